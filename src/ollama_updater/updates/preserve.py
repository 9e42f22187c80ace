"""
Preservation of the systemd unit file across an install.

The upstream installer rewrites the unit file. ConfigPreserver keeps a
byte-exact sidecar copy and puts it back afterwards. The file content is
never interpreted.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from ollama_updater.errors import FailedPreconditionError, MissingConfigError
from ollama_updater.logging import get_logger
from ollama_updater.updates.operations import copy_file

if TYPE_CHECKING:
    from ollama_updater.config import PathsConfig

logger = get_logger(__name__)


class ConfigPreserver:
    """
    Backs up a configuration file and restores it.

    Attributes:
        service_file: Canonical location of the file.
        backup_file: Sidecar location of the copy.
    """

    def __init__(self, service_file: Path, backup_file: Path) -> None:
        self.service_file = Path(service_file)
        self.backup_file = Path(backup_file)

    @classmethod
    def from_config(cls, config: PathsConfig) -> ConfigPreserver:
        """Create a ConfigPreserver from configuration."""
        return cls(service_file=config.service_file, backup_file=config.backup_file)

    def backup(self) -> Path:
        """
        Copy the service file to the sidecar location.

        Any earlier backup is overwritten.

        Returns:
            The backup path.

        Raises:
            MissingConfigError: If the service file does not exist.
            FailedPreconditionError: If the copy fails.
        """
        if not self.service_file.is_file():
            raise MissingConfigError(str(self.service_file))

        logger.info(f"Backing up {self.service_file} to {self.backup_file}")
        return copy_file(self.service_file, self.backup_file)

    def restore(self) -> None:
        """
        Copy the sidecar back over the service file.

        Raises:
            FailedPreconditionError: If there is no backup or the copy fails.
        """
        if not self.backup_file.is_file():
            raise FailedPreconditionError(
                f"No backup to restore: {self.backup_file}",
                details={"backup_file": str(self.backup_file)},
            )

        logger.info(f"Restoring {self.service_file} from {self.backup_file}")
        copy_file(self.backup_file, self.service_file)
