"""
Data models for the Rule Scorer module.
"""
from dataclasses import dataclass, field
from typing import List


@dataclass
class RuleScore:
    """Deterministic fit score of a (property, mandate) pair."""
    score: int
    reasons: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"score": self.score, "reasons": self.reasons}
