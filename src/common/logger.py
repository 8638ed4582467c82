"""
Search-scoped logging.

Every orchestrator run gets a search id. Log lines written during the cache
lookup, the provider call, JSON extraction and scoring carry that id and the
search type, so a single search can be followed through the service log.

DEBUG_MODE=true switches the search loggers to DEBUG.
"""

import logging
import os
import time
from typing import Any, MutableMapping, Optional, Tuple

DEBUG_MODE = os.getenv("DEBUG_MODE", "false").lower() == "true"


class PipelineLogger(logging.LoggerAdapter):
    """
    Logger adapter tagging messages with [search:<id>] [<stage>].

    Also remembers when the search started; elapsed() gives the seconds
    spent so far, rounded for log output.
    """

    def __init__(
        self,
        logger: logging.Logger,
        search_id: Optional[str] = None,
        stage: Optional[str] = None,
        debug_mode: Optional[bool] = None,
    ):
        super().__init__(logger, {"search_id": search_id, "stage": stage})
        self.search_id = search_id
        self.stage = stage
        self.started = time.monotonic()
        if DEBUG_MODE if debug_mode is None else debug_mode:
            logger.setLevel(logging.DEBUG)

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        tags = []
        if self.search_id:
            tags.append(f"[search:{self.search_id[:8]}]")
        if self.stage:
            tags.append(f"[{self.stage}]")
        if not tags:
            return msg, kwargs
        return f"{' '.join(tags)} {msg}", kwargs

    def elapsed(self) -> float:
        return round(time.monotonic() - self.started, 2)


def get_logger(
    name: str,
    search_id: Optional[str] = None,
    stage: Optional[str] = None,
    debug_mode: Optional[bool] = None,
) -> PipelineLogger:
    """
    Logger for one search.

    Args:
        name: Logger name (usually __name__)
        search_id: Search identifier, shortened to 8 characters in the prefix
        stage: Search type or pipeline stage
        debug_mode: Force DEBUG on or off; None follows DEBUG_MODE
    """
    return PipelineLogger(logging.getLogger(name), search_id, stage, debug_mode)
