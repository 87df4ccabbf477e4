from .engine import run_job, run_jobs, run_job_sync
from .model import Framework, JobConfig, build_config
from .notifications import Notification, NotificationType
from .ports import unsupported_port
from .test_runner import TestRunner
from .tunnel import Tunnel, TunnelState

__all__ = [
    "run_job", "run_jobs", "run_job_sync",
    "Framework", "JobConfig", "build_config",
    "Notification", "NotificationType",
    "unsupported_port",
    "TestRunner", "Tunnel", "TunnelState",
]
