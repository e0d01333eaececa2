"""
Budget Ledger - Daily token accounting per usage category.

Tracks token consumption for scoring, news, chat and tools against fixed
daily ceilings plus a combined ceiling. Counters reset at the UTC day
boundary: the old period is logged once, then a fresh tracker replaces it,
then the current check or record proceeds.

State is per-process. Multi-instance deployments each keep their own
ledger and will under-count the shared budget.
"""
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional, Union

from loguru import logger

from config import settings as app_settings, Settings
from constants import HealthStatus, UsageType
from utils.events import EventEmitter, default_emitter
from llm.costs import DEFAULT_COST_MODEL, estimate_cost


Category = Union[UsageType, str]


@dataclass(frozen=True)
class DailyBudgets:
    """Daily token ceilings. Tools share the chat ceiling."""
    scoring: int = 100_000
    news: int = 50_000
    chat: int = 200_000
    total: int = 500_000
    warning_percent: float = 80.0

    @classmethod
    def from_settings(cls, s: Settings) -> "DailyBudgets":
        return cls(
            scoring=s.DAILY_SCORING_TOKENS,
            news=s.DAILY_NEWS_TOKENS,
            chat=s.DAILY_CHAT_TOKENS,
            total=s.DAILY_TOTAL_TOKENS,
            warning_percent=s.BUDGET_WARNING_PERCENT,
        )

    def for_category(self, category: UsageType) -> int:
        if category == UsageType.SCORING:
            return self.scoring
        if category == UsageType.NEWS:
            return self.news
        return self.chat


@dataclass
class UsageTracker:
    """Token counters for a single UTC day."""
    date: str
    scoring: int = 0
    news: int = 0
    chat: int = 0
    tools: int = 0
    total_cost: float = 0.0

    @property
    def total_tokens(self) -> int:
        return self.scoring + self.news + self.chat + self.tools

    def used(self, category: UsageType) -> int:
        return getattr(self, category.value)

    def add(self, category: UsageType, tokens: int) -> None:
        setattr(self, category.value, max(0, self.used(category) + tokens))


@dataclass
class SpendDecision:
    allowed: bool
    reason: Optional[str] = None


@dataclass
class Reservation:
    """Tokens held against a budget until the real usage is known."""
    category: UsageType
    tokens: int
    date: str
    decision: SpendDecision = field(default_factory=lambda: SpendDecision(True))

    @property
    def allowed(self) -> bool:
        return self.decision.allowed


class BudgetLedger:
    """
    Daily token ledger.

    All public methods take the internal lock, so check-and-record sequences
    from concurrent requests (threads or tasks) cannot lose updates.
    """

    def __init__(
        self,
        budgets: Optional[DailyBudgets] = None,
        clock: Callable[[], float] = time.time,
        emitter: Optional[EventEmitter] = None,
    ):
        """
        Initialize ledger.

        Args:
            budgets: Daily ceilings (defaults to values from settings)
            clock: Returns epoch seconds; injectable for tests
            emitter: Event sink for threshold and reset events
        """
        self.budgets = budgets or DailyBudgets.from_settings(app_settings)
        self._clock = clock
        self._emitter = emitter or default_emitter
        self._lock = threading.Lock()
        self._tracker = UsageTracker(date=self._today())

    # ============================================
    # DAY BOUNDARY
    # ============================================

    def _today(self) -> str:
        return datetime.fromtimestamp(self._clock(), tz=timezone.utc).strftime("%Y-%m-%d")

    def _roll_over_if_new_day(self) -> None:
        """Log and replace the tracker on date change. Caller holds the lock."""
        today = self._today()
        old = self._tracker
        if old.date == today:
            return

        self._emitter.emit(
            "INFO",
            "budget.daily_reset",
            f"Daily reset. Previous day ({old.date}): scoring={old.scoring}, "
            f"news={old.news}, chat={old.chat}, tools={old.tools}, "
            f"totalCost=${old.total_cost:.4f}",
            previous_date=old.date,
            scoring=old.scoring,
            news=old.news,
            chat=old.chat,
            tools=old.tools,
            total_cost=round(old.total_cost, 6),
        )
        self._tracker = UsageTracker(date=today)

    def roll_over(self) -> None:
        """Apply a pending day reset. Safe to call from any timer."""
        with self._lock:
            self._roll_over_if_new_day()

    # ============================================
    # CHECK / RECORD
    # ============================================

    def _check(self, category: UsageType, estimated_tokens: int) -> SpendDecision:
        budget = self.budgets.for_category(category)
        current = self._tracker.used(category)
        if current + estimated_tokens > budget:
            return SpendDecision(
                allowed=False,
                reason=f"{category.value} budget exceeded: {current}/{budget} tokens used",
            )

        total_used = self._tracker.total_tokens
        if total_used + estimated_tokens > self.budgets.total:
            return SpendDecision(
                allowed=False,
                reason=f"Total daily budget exceeded: {total_used}/{self.budgets.total} tokens used",
            )
        return SpendDecision(allowed=True)

    def can_spend(self, category: Category, estimated_tokens: int) -> SpendDecision:
        """
        Check whether a call of `estimated_tokens` fits both the category
        and the combined daily budget. Does not reserve anything.
        """
        category = UsageType(category)
        with self._lock:
            self._roll_over_if_new_day()
            decision = self._check(category, estimated_tokens)
        if not decision.allowed:
            self._emitter.increment("budget.denied", category=category.value)
        return decision

    def try_reserve(self, category: Category, estimated_tokens: int) -> Reservation:
        """
        Atomically check and hold `estimated_tokens` against the budget.

        The hold must later be passed to `settle()` or `release()`.
        """
        category = UsageType(category)
        with self._lock:
            self._roll_over_if_new_day()
            decision = self._check(category, estimated_tokens)
            if decision.allowed:
                self._tracker.add(category, estimated_tokens)
            reservation = Reservation(
                category=category,
                tokens=estimated_tokens if decision.allowed else 0,
                date=self._tracker.date,
                decision=decision,
            )
        if not decision.allowed:
            self._emitter.increment("budget.denied", category=category.value)
        return reservation

    def release(self, reservation: Reservation) -> None:
        """Return held tokens without recording usage."""
        with self._lock:
            self._roll_over_if_new_day()
            self._drop_hold(reservation)

    def settle(
        self,
        reservation: Reservation,
        input_tokens: int,
        output_tokens: int,
        model: str = DEFAULT_COST_MODEL,
    ) -> None:
        """Replace a hold with the actual usage of the call."""
        with self._lock:
            self._roll_over_if_new_day()
            self._drop_hold(reservation)
            self._record(reservation.category, input_tokens, output_tokens, model)

    def _drop_hold(self, reservation: Reservation) -> None:
        # A hold from a previous day was discarded with that day's tracker
        if reservation.tokens and reservation.date == self._tracker.date:
            self._tracker.add(reservation.category, -reservation.tokens)
        reservation.tokens = 0

    def record(
        self,
        category: Category,
        input_tokens: int,
        output_tokens: int,
        model: str = DEFAULT_COST_MODEL,
    ) -> None:
        """Add the usage of a completed call to today's totals."""
        category = UsageType(category)
        with self._lock:
            self._roll_over_if_new_day()
            self._record(category, input_tokens, output_tokens, model)

    def _record(self, category: UsageType, input_tokens: int, output_tokens: int, model: str) -> None:
        self._tracker.add(category, input_tokens + output_tokens)
        self._tracker.total_cost += estimate_cost(input_tokens, output_tokens, model)

        used = self._tracker.used(category)
        budget = self.budgets.for_category(category)
        percent = used / budget * 100
        if percent > self.budgets.warning_percent:
            self._emitter.emit(
                "WARNING",
                "budget.threshold",
                f"{category.value} usage at {percent:.0f}% ({used}/{budget} tokens)",
                category=category.value,
                used=used,
                budget=budget,
                percent=round(percent, 1),
            )

    # ============================================
    # REPORTING
    # ============================================

    def get_usage_stats(self) -> dict:
        """Snapshot of today's usage with a health status."""
        with self._lock:
            self._roll_over_if_new_day()
            t = self._tracker
            by_type = {}
            for category in UsageType:
                budget = self.budgets.for_category(category)
                used = t.used(category)
                by_type[category.value] = {
                    "used": used,
                    "budget": budget,
                    "percent_used": f"{used / budget * 100:.1f}%",
                }
            total_tokens = t.total_tokens
            total_cost = t.total_cost
            date = t.date

        total_percent = total_tokens / self.budgets.total * 100
        if total_percent > 90:
            health = HealthStatus.CRITICAL
        elif total_percent > 70:
            health = HealthStatus.WARNING
        else:
            health = HealthStatus.OK

        return {
            "date": date,
            "by_type": by_type,
            "total_tokens": total_tokens,
            "total_budget": self.budgets.total,
            "total_cost": f"${total_cost:.4f}",
            "health_status": health.value,
        }

    def reset(self) -> None:
        """Start a fresh tracker for today without logging."""
        with self._lock:
            self._tracker = UsageTracker(date=self._today())
        logger.debug("Budget ledger reset")
