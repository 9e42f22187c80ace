"""Allow ``python -m ollama_updater``."""

from ollama_updater.cli import main

raise SystemExit(main())
