"""
Provisioning service — package re-exports.

Each symbol lives in its single-responsibility module inside the
appropriate onion layer (data → domain → detection → execution →
managers → orchestration); this module lets callers write::

    from xsetup.core.services.provision import provision, resolve_profile
"""

# ── L1: Domain ──
from xsetup.core.services.provision.domain.profile_resolution import (  # noqa: F401
    install_phases,
    resolve_apt_packages,
    resolve_profile,
)

# ── L3: Detection ──
from xsetup.core.services.provision.detection.architecture import (  # noqa: F401
    architecture_tag,
    detect_architecture,
)
from xsetup.core.services.provision.detection.identity import (  # noqa: F401
    resolve_identity,
)

# ── Managers ──
from xsetup.core.services.provision.managers import (  # noqa: F401
    MANAGERS,
    get_manager,
)

# ── L5: Orchestration ──
from xsetup.core.services.provision.orchestration.orchestrator import (  # noqa: F401
    ProvisionOptions,
    ProvisionReport,
    provision,
)
from xsetup.core.services.provision.orchestration.profile_applier import (  # noqa: F401
    build_profile_task,
)
