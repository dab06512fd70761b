"""arq worker settings module.

Import path for arq CLI: arq sprewards.workers.settings.WorkerSettings
"""

from __future__ import annotations

from sprewards.workers.jobs import WorkerSettings

__all__ = ["WorkerSettings"]
