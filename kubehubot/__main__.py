"""Entry point for `python -m kubehubot`.

Usage:
    python -m kubehubot
"""

from __future__ import annotations

import asyncio

from kubehubot.app import main

asyncio.run(main())
