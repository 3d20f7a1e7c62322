"""
monoplan | config.py

Central configuration object shared by every plan.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Iterable, Optional

from monoplan.batches import Batching
from monoplan.shell import SystemShell


@dataclass
class PlanSetup:
    """
    Planning configuration.

    It centralizes:
      - the batch rule set applied to prerequisites
      - the shell used when tasks are executed
      - the logger
    """

    batching: Batching = field(default_factory=Batching)
    shell: SystemShell = field(default_factory=SystemShell)
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("monoplan"))

    def __post_init__(self):
        # Configure logger if not configured
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter("[monoplan] %(message)s"))
            self.logger.addHandler(handler)
        if self.logger.level == logging.NOTSET:
            self.logger.setLevel(logging.INFO)

    def with_batches(
        self,
        only: Optional[Iterable[str]] = None,
        with_: Optional[Iterable[str]] = None,
        except_: Optional[Iterable[str]] = None,
        reset: bool = False,
    ) -> "PlanSetup":
        """Copy of this setup with batch rules added (or reset first)."""
        batching = self.batching.reset() if reset else self.batching
        if only:
            batching = batching.only(only)
        if with_:
            batching = batching.with_(with_)
        if except_:
            batching = batching.except_(except_)
        return replace(self, batching=batching)
