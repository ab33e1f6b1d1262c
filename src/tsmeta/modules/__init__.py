"""Feature modules for :mod:`tsmeta`.

Subpackages are imported lazily by callers; this namespace only documents
the layout: ``metadata`` (extractors), ``dependencies`` (import
resolution), ``sandbox`` (compiler projects) and ``analysis`` (the
orchestrator).
"""

from __future__ import annotations

__all__: list[str] = []
