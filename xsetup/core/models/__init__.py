"""
Domain models — pydantic types shared by the services and the CLI.
"""

from xsetup.core.models.identity import Identity  # noqa: F401
from xsetup.core.models.profile import Profile, ToolSpec, VersionConstraint  # noqa: F401
from xsetup.core.models.run import RunRecord  # noqa: F401
from xsetup.core.models.task import Probe, Step, Task, ToolState  # noqa: F401
from xsetup.core.models.config import SetupConfig  # noqa: F401
