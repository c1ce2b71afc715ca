__version__ = "0.1.0"

from gatehouse_core.config import CoreConfig, load_core_config  # noqa: E402
from gatehouse_core.home import (  # noqa: E402
    GatehousePaths,
    ensure_gatehouse_layout,
    resolve_gatehouse_home,
)

__all__ = [
    "CoreConfig",
    "GatehousePaths",
    "__version__",
    "ensure_gatehouse_layout",
    "load_core_config",
    "resolve_gatehouse_home",
]
