"""
Ollama updater - update a local Ollama install without losing the systemd unit.

The upstream installer rewrites /etc/systemd/system/ollama.service on every
run. This package brackets the install with a backup and restore of that unit
file, then reloads systemd and restarts the service.
"""

__version__ = "0.1.0"
