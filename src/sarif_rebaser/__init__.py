"""sarif_rebaser: correlate SARIF artifact uris with local workspace files."""

__all__ = [
    "__version__",
    "UriRebaser",
    "SelectionCache",
    "CasePolicy",
    "common_indices",
    "common_length",
    "common_suffix_length",
    "map_distinct",
    "MalformedUriError",
    "rebase_logs",
]
__version__ = "0.1.0"

from sarif_rebaser.api import rebase_logs  # noqa: E402
from sarif_rebaser.core.cache import SelectionCache  # noqa: E402
from sarif_rebaser.core.names import map_distinct  # noqa: E402
from sarif_rebaser.core.paths import (  # noqa: E402
    CasePolicy,
    common_indices,
    common_length,
    common_suffix_length,
)
from sarif_rebaser.core.rebaser import UriRebaser  # noqa: E402
from sarif_rebaser.errors import MalformedUriError  # noqa: E402
