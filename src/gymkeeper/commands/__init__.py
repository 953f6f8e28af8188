"""CLI commands for gymkeeper."""

from .init import init
from .seed import seed
from .serve import serve
from .stats import stats

__all__ = ["init", "seed", "serve", "stats"]
