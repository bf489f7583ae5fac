"""Cache seeding utilities for :mod:`pausal_fx`."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

__all__ = ["seed_rates"]

if TYPE_CHECKING:  # pragma: no cover - import only for static analyzers
    from pausal_fx.seeds.warm_rate_cache import seed_rates as seed_rates


def __getattr__(name: str) -> Any:
    """Lazily expose seed helpers to avoid import-time side effects."""

    if name == "seed_rates":
        from pausal_fx.seeds.warm_rate_cache import seed_rates as _seed

        return _seed
    raise AttributeError(f"module 'pausal_fx.seeds' has no attribute {name}")
