from __future__ import annotations

from artifact.stages.changeset import STAGE as CHANGESET
from artifact.stages.dependencies import STAGE as DEPENDENCIES
from artifact.stages.entrypoints import STAGE as ENTRYPOINTS
from artifact.stages.impact import STAGE as IMPACT
from artifact.stages.rebuild import STAGE as REBUILD
from artifact.stages.reporting import STAGE as REPORTING

# Execution order.
__all_stages__ = [
    CHANGESET,
    ENTRYPOINTS,
    DEPENDENCIES,
    IMPACT,
    REPORTING,
    REBUILD,
]
