from __future__ import annotations


class UpstreamUnavailable(Exception):
    """An upstream catalog call failed, timed out or returned garbage."""


class RecipeNotFound(Exception):
    pass
