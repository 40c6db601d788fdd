"""Run ``python -m bosun package.module:ClassName``."""

from __future__ import annotations

from .cli import main

raise SystemExit(main())
