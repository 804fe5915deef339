"""JSON Lines audit log of per-turn routing decisions."""
import json
import logging
import os
import threading
from datetime import datetime, timezone
from typing import List, Optional

logger = logging.getLogger(__name__)


class RoutingLogger:
    """Appends one JSON object per completed turn to a log file."""

    def __init__(self, log_file_path: str = "logs/routing_decisions.jsonl"):
        self.log_file_path = log_file_path
        directory = os.path.dirname(log_file_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self._file = open(log_file_path, "a", encoding="utf-8")
        self._lock = threading.Lock()
        logger.info(f"RoutingLogger writing to {log_file_path}")

    def log_routing_decision(
        self,
        session_id: str,
        query: str,
        route: str,
        rule_triggered: str,
        passages_retrieved: int = 0,
        prompt_mode: str = "plain",
        matched_terms: Optional[List[str]] = None,
        tokens_input: int = 0,
        tokens_output: int = 0,
        latency_ms: int = 0
    ) -> None:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "session_id": session_id,
            "query": query,
            "route": route,
            "rule_triggered": rule_triggered,
            "matched_terms": matched_terms or [],
            "passages_retrieved": passages_retrieved,
            "prompt_mode": prompt_mode,
            "tokens_input": tokens_input,
            "tokens_output": tokens_output,
            "latency_ms": latency_ms,
        }

        with self._lock:
            if self._file.closed:
                logger.warning("RoutingLogger is closed, dropping entry")
                return
            self._file.write(json.dumps(entry, ensure_ascii=False) + "\n")
            self._file.flush()

    def close(self) -> None:
        with self._lock:
            if not self._file.closed:
                self._file.close()
