"""Checkout shim for the src layout.

The real package lives in src/bodenrichtwert. Running ``python -m bodenrichtwert``
from the repository root would otherwise pick up this directory as an empty
package; extending ``__path__`` lets the submodules resolve to src/.
"""

from __future__ import annotations

from pathlib import Path
import sys

_SRC_DIR = Path(__file__).resolve().parent.parent / "src"
_IMPL_PKG_DIR = _SRC_DIR / "bodenrichtwert"

if _IMPL_PKG_DIR.is_dir():
    src_str = str(_SRC_DIR)
    if src_str not in sys.path:
        sys.path.insert(0, src_str)

    impl_str = str(_IMPL_PKG_DIR)
    if impl_str not in list(__path__):  # type: ignore[name-defined]
        __path__.append(impl_str)  # type: ignore[name-defined]

__all__ = ["lookup", "supported_states"]


def __getattr__(name: str):
    if name == "lookup":
        from .service import lookup

        return lookup
    if name == "supported_states":
        from .router import supported_states

        return supported_states
    raise AttributeError(name)
