"""
Batch Scorer - Tier 4 AI Scoring

Scores up to BATCH_SIZE_MAX properties in one metered LLM call. Never
raises to the caller: any budget, rate-limit, transport or parsing failure
turns into rule-derived fallback scores that carry the failure reason.
"""
import asyncio
import json
from typing import List, Optional, Sequence

from loguru import logger
from pydantic import ValidationError

from config import settings as app_settings, Settings
from constants import FallbackReason, UsageType
from llm import LLMClient, LLMRequest, get_client
from processor.budget import BudgetLedger, RateLimiter, estimate_tokens
from processor.context.models import CompressedInvestorContext, CompressedMarketContext, CompressedPropertyContext
from processor.errors import (
    BudgetExceeded,
    RateLimited,
    ScoringPipelineError,
    UpstreamMalformed,
    UpstreamUnavailable,
)
from prompts import PromptLoader
from utils.events import EventEmitter, default_emitter
from .models import AIScoreOutput, BatchItem, create_fallback_score


MARKET_NEWS_CHARS = 30


def _market_line(market: Optional[CompressedMarketContext]) -> str:
    if market is None:
        return "no market data"
    line = f"{market.sentiment.value}, {market.price_direction.value}"
    if market.top_news:
        line += f", {market.top_news[:MARKET_NEWS_CHARS]}"
    return line


def build_batch_prompt(
    investor: CompressedInvestorContext,
    items: Sequence[BatchItem],
    loader: Optional[PromptLoader] = None,
) -> str:
    """Render the user prompt listing every item in batch order."""
    loader = loader or PromptLoader()

    lines = []
    for i, item in enumerate(items, start=1):
        lines.append(f"{i}. [{item.property_id}] {item.context.summary_text}")
        lines.append(f"   Market: {_market_line(item.market)}")

    return loader.format(
        "batch_scoring",
        investor_summary=investor.summary_text,
        strategy=investor.strategy,
        risk_level=investor.risk_level,
        areas=", ".join(investor.key_areas) or "open",
        count=len(items),
        property_lines="\n".join(lines),
    )


def parse_scores(content: str) -> list:
    """
    Extract the raw `scores` array from a provider response.

    Raises:
        UpstreamMalformed: Not JSON, or no `scores` list
    """
    try:
        parsed = json.loads(content or "{}")
    except json.JSONDecodeError as e:
        raise UpstreamMalformed(f"response is not valid JSON: {e}") from e

    scores = parsed.get("scores") if isinstance(parsed, dict) else None
    if not isinstance(scores, list):
        raise UpstreamMalformed(f"response has no scores array: {content[:200]}")
    return scores


def _validate_entry(entry) -> Optional[AIScoreOutput]:
    if not isinstance(entry, dict):
        return None
    try:
        score = AIScoreOutput.model_validate(entry)
    except ValidationError:
        return None
    # Providers cannot mark their own output as a fallback
    return score.model_copy(update={"fallback_reason": None}) if score.fallback_reason else score


class BatchScorer:
    """
    Tier 4: AI Scoring

    One call per batch. Output length and order always match the
    (capped) input.
    """

    def __init__(
        self,
        client: Optional[LLMClient] = None,
        ledger: Optional[BudgetLedger] = None,
        limiter: Optional[RateLimiter] = None,
        settings: Optional[Settings] = None,
        emitter: Optional[EventEmitter] = None,
    ):
        """
        Initialize batch scorer.

        Args:
            client: LLM client (built from settings on first call if not provided)
            ledger: Shared daily budget ledger
            limiter: Shared rate limiter
            settings: Batch size, timeout and token parameters
            emitter: Event sink for fallback and truncation counters
        """
        self.settings = settings or app_settings
        self._client = client
        self.ledger = ledger or BudgetLedger()
        self.limiter = limiter or RateLimiter()
        self.emitter = emitter or default_emitter
        self.prompt_loader = PromptLoader()

    async def score_batch(
        self,
        investor: CompressedInvestorContext,
        items: Sequence[BatchItem],
    ) -> List[AIScoreOutput]:
        """
        Score a batch of properties for one investor.

        Items beyond BATCH_SIZE_MAX are dropped before the prompt is built
        and do not appear in the output.

        Returns:
            One AIScoreOutput per kept item, in input order
        """
        if not items:
            return []

        max_batch = self.settings.BATCH_SIZE_MAX
        if len(items) > max_batch:
            logger.warning(f"Truncating batch from {len(items)} to {max_batch}")
            self.emitter.increment("batch.truncated")
        batch = list(items[:max_batch])

        system_prompt = self.prompt_loader.get("batch_scoring_system")
        user_prompt = build_batch_prompt(investor, batch, self.prompt_loader)

        try:
            content = await self._request(batch, system_prompt, user_prompt)
            raw_scores = parse_scores(content)
        except ScoringPipelineError as e:
            return self._fallback_all(batch, e)

        return self._match_scores(batch, raw_scores)

    async def score_single(
        self,
        investor: CompressedInvestorContext,
        context: CompressedPropertyContext,
        market: Optional[CompressedMarketContext],
        rule_score: int,
    ) -> AIScoreOutput:
        """Score one property through the batch path."""
        item = BatchItem(
            property_id=context.property_id,
            context=context,
            market=market,
            rule_score=rule_score,
        )
        results = await self.score_batch(investor, [item])
        if results:
            return results[0]
        return create_fallback_score(item.property_id, rule_score, FallbackReason.UPSTREAM_MALFORMED)

    async def _request(self, batch: List[BatchItem], system_prompt: str, user_prompt: str) -> str:
        """Reserve budget, pass the rate limit, call the provider and settle usage."""
        client = self.client

        estimated_input = estimate_tokens(system_prompt) + estimate_tokens(user_prompt)
        estimated_output = len(batch) * self.settings.OUTPUT_TOKENS_PER_PROPERTY
        if estimated_input > self.settings.MAX_INPUT_TOKENS:
            logger.warning(
                f"Batch prompt is {estimated_input} tokens (max: {self.settings.MAX_INPUT_TOKENS})"
            )

        reservation = self.ledger.try_reserve(UsageType.SCORING, estimated_input + estimated_output)
        if not reservation.allowed:
            raise BudgetExceeded(reservation.decision.reason or "scoring budget exceeded")

        rate = self.limiter.can_make_ai_request()
        if not rate.allowed:
            self.ledger.release(reservation)
            raise RateLimited(f"rate limited, retry in {rate.retry_after_ms}ms", rate.retry_after_ms)

        request = LLMRequest(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            response_format="json_object",
            temperature=self.settings.LLM_TEMPERATURE,
            max_output_tokens=len(batch) * self.settings.MAX_OUTPUT_TOKENS_PER_PROPERTY,
            usage_type=UsageType.SCORING.value,
        )

        try:
            response = await asyncio.wait_for(
                client.complete(request),
                timeout=self.settings.LLM_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError as e:
            self.ledger.release(reservation)
            raise UpstreamUnavailable(
                f"timed out after {self.settings.LLM_TIMEOUT_SECONDS}s"
            ) from e
        except Exception as e:
            self.ledger.release(reservation)
            raise UpstreamUnavailable(f"{type(e).__name__}: {e}") from e

        input_tokens = response.input_tokens if response.input_tokens is not None else estimated_input
        output_tokens = response.output_tokens if response.output_tokens is not None else estimated_output
        self.ledger.settle(reservation, input_tokens, output_tokens, response.model or client.model)

        logger.info(
            f"Scored {len(batch)} properties in {response.latency_ms or 0}ms "
            f"({input_tokens + output_tokens} tokens)"
        )
        return response.content

    @property
    def client(self) -> LLMClient:
        """
        Provider client, created on first use.

        Raises:
            UpstreamUnavailable: No provider can be configured (unknown name, missing key)
        """
        if self._client is None:
            try:
                self._client = get_client(config=self.settings)
            except ValueError as e:
                raise UpstreamUnavailable(str(e)) from e
        return self._client

    def _match_scores(self, batch: List[BatchItem], raw_scores: list) -> List[AIScoreOutput]:
        """
        Map response entries back to batch items.

        By id first (first valid entry per id wins), then the valid entry
        at the same position if it is not claimed by another item's id,
        else a fallback.
        """
        validated = [_validate_entry(entry) for entry in raw_scores]
        batch_ids = {item.property_id for item in batch}

        by_id = {}
        for score in validated:
            if score is not None and score.property_id not in by_id:
                by_id[score.property_id] = score

        results: List[AIScoreOutput] = []
        malformed = 0
        for index, item in enumerate(batch):
            score = by_id.get(item.property_id)

            if score is None and index < len(validated):
                positional = validated[index]
                if positional is not None and positional.property_id not in batch_ids:
                    score = positional.model_copy(update={"property_id": item.property_id})

            if score is None:
                malformed += 1
                score = create_fallback_score(
                    item.property_id, item.rule_score, FallbackReason.UPSTREAM_MALFORMED
                )
            results.append(score)

        if malformed:
            logger.warning(f"{malformed}/{len(batch)} scores missing or invalid; using rule fallback")
            self.emitter.increment(
                "batch.fallback", malformed, reason=FallbackReason.UPSTREAM_MALFORMED.value
            )
        return results

    def _fallback_all(self, batch: List[BatchItem], error: ScoringPipelineError) -> List[AIScoreOutput]:
        reason = error.fallback_reason or FallbackReason.UPSTREAM_UNAVAILABLE
        if isinstance(error, (BudgetExceeded, RateLimited)):
            logger.warning(f"AI scoring skipped ({reason.value}): {error}")
        else:
            logger.error(f"AI scoring failed ({reason.value}): {error}")

        self.emitter.increment("batch.fallback", len(batch), reason=reason.value)
        return [create_fallback_score(item.property_id, item.rule_score, reason) for item in batch]
