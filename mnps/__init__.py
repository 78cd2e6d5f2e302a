"""MNPS fantasy-football dashboard package.

Re-exports the subpackages; the pure metric pipeline lives in ``mnps.compute``.
"""

from importlib import import_module as _imp

_SUBPACKAGES = ["api", "compute", "report", "cli"]

for _name in _SUBPACKAGES:
    _imp(f"mnps.{_name}")

__all__ = list(_SUBPACKAGES)
