"""
L5 Orchestration — ``__init__.py`` re-exports top-level coordinators.

These are the entry points that external code calls.
"""

from xsetup.core.services.provision.orchestration.orchestrator import (  # noqa: F401
    ProvisionOptions,
    ProvisionReport,
    preflight,
    provision,
)
from xsetup.core.services.provision.orchestration.profile_applier import (  # noqa: F401
    build_profile_task,
)
