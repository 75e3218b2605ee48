# lambdas/dead_letter_processor/failure_policy.py
from functools import lru_cache
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_POLICY_PATH = Path(__file__).parent / "failure_policy.yml"


class FailureDecision:
    """A simple data class to hold the outcome of the retry decision."""
    def __init__(self, republish: bool, reason: str):
        self.republish = republish
        self.reason = reason

    def __bool__(self) -> bool:
        """Allows the object to be used in boolean contexts, like `if decision:`."""
        return self.republish

    def __repr__(self) -> str:
        return f"FailureDecision(republish={self.republish}, reason='{self.reason}')"


class FailurePolicy:
    """
    Decides what happens to an event that landed in the dead-letter queue:
    republish it to the bus, or archive it (and alert if it is critical).
    """

    def __init__(self, retryable_reasons: list[str], critical_event_types: list[str]):
        self.retryable_reasons = [r for r in retryable_reasons if r]
        self.critical_event_types = set(critical_event_types)

    @classmethod
    def from_yaml(cls, path) -> "FailurePolicy":
        """Loads the policy lists from a YAML file."""
        with open(path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f) or {}
        return cls(
            retryable_reasons=config.get('retryable_reasons') or [],
            critical_event_types=config.get('critical_event_types') or [],
        )

    def is_retryable(self, failure_reason: str) -> bool:
        """True when any configured reason appears in the failure reason, ignoring case."""
        reason = (failure_reason or "").lower()
        return any(r.lower() in reason for r in self.retryable_reasons)

    def is_critical(self, message: dict) -> bool:
        return message.get('detail-type') in self.critical_event_types

    def decide(self, failure_reason: str, receive_count: int, max_attempts: int) -> FailureDecision:
        """
        Republish only while the receive count is below the attempt limit and
        the failure looks transient.
        """
        if receive_count >= max_attempts:
            return FailureDecision(False, f"receive count {receive_count} reached limit {max_attempts}")
        if not self.is_retryable(failure_reason):
            return FailureDecision(False, f"'{failure_reason}' is not retryable")
        return FailureDecision(True, f"'{failure_reason}' is retryable (attempt {receive_count} of {max_attempts})")


@lru_cache(maxsize=4)
def load_failure_policy(path: Optional[str] = None) -> FailurePolicy:
    """Loads and caches the policy; falls back to the bundled failure_policy.yml."""
    policy_path = Path(path) if path else DEFAULT_POLICY_PATH
    print(f"Loading failure policy from {policy_path}")
    return FailurePolicy.from_yaml(policy_path)
