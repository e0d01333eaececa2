"""
LLM Client Base - Abstract base class for LLM providers.
"""
import time
import asyncio
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict
from contextvars import ContextVar

from loguru import logger

from .costs import estimate_cost


# Context variables for passing metadata to logging
_current_org_id: ContextVar[Optional[str]] = ContextVar('org_id', default=None)
_current_request_id: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
_current_endpoint: ContextVar[Optional[str]] = ContextVar('endpoint', default=None)


def set_llm_context(
    org_id: Optional[str] = None,
    request_id: Optional[str] = None,
    endpoint: Optional[str] = None,
):
    """Set context for LLM call logging."""
    if org_id is not None:
        _current_org_id.set(org_id)
    if request_id is not None:
        _current_request_id.set(request_id)
    if endpoint is not None:
        _current_endpoint.set(endpoint)


def get_llm_context() -> Dict[str, Optional[str]]:
    """Get current LLM logging context."""
    return {
        "org_id": _current_org_id.get(),
        "request_id": _current_request_id.get(),
        "endpoint": _current_endpoint.get(),
    }


@dataclass
class LLMRequest:
    """A single completion request."""
    system_prompt: str
    user_prompt: str
    response_format: Optional[str] = "json_object"
    temperature: float = 0.3
    max_output_tokens: int = 500
    usage_type: str = "scoring"


@dataclass
class LLMResponse:
    """Standard response from LLM."""
    content: str
    model: str
    usage: Dict[str, int] = field(default_factory=dict)  # input_tokens, output_tokens
    stop_reason: Optional[str] = None
    latency_ms: Optional[int] = None

    @property
    def input_tokens(self) -> Optional[int]:
        return self.usage.get("input_tokens")

    @property
    def output_tokens(self) -> Optional[int]:
        return self.usage.get("output_tokens")

    @property
    def total_tokens(self) -> int:
        return self.usage.get("input_tokens", 0) + self.usage.get("output_tokens", 0)


@dataclass
class LLMCallRecord:
    """Record of an LLM call for the usage log."""
    timestamp: datetime
    usage_type: str
    model: str
    input_tokens: int
    output_tokens: int
    cost_usd: float
    duration_ms: Optional[int]
    success: bool
    error_message: Optional[str]
    org_id: Optional[str]
    request_id: Optional[str]
    endpoint: Optional[str]


class LLMClient(ABC):
    """
    Abstract base class for LLM clients.

    Providers implement `_complete`; `complete` wraps it with timing and
    usage logging. Provider exceptions propagate to the caller.
    """

    def __init__(self, api_key: str, model: str, enable_logging: bool = True):
        self.api_key = api_key
        self.model = model
        self.enable_logging = enable_logging

    @abstractmethod
    async def _complete(self, request: LLMRequest) -> LLMResponse:
        """Send one request to the provider."""
        pass

    async def complete(self, request: LLMRequest) -> LLMResponse:
        """
        Generate a completion and log the call.

        Args:
            request: Prompts plus generation parameters

        Returns:
            LLMResponse with the raw content and token usage
        """
        start = time.monotonic()
        try:
            response = await self._complete(request)
        except Exception as e:
            self.log_call(request, None, int((time.monotonic() - start) * 1000), error=e)
            raise

        response.latency_ms = int((time.monotonic() - start) * 1000)
        self.log_call(request, response, response.latency_ms)
        return response

    def _create_call_record(
        self,
        request: LLMRequest,
        response: Optional[LLMResponse],
        duration_ms: Optional[int],
        error: Optional[BaseException] = None,
    ) -> LLMCallRecord:
        context = get_llm_context()
        input_tokens = (response.input_tokens if response else None) or 0
        output_tokens = (response.output_tokens if response else None) or 0
        model = response.model if response else self.model

        return LLMCallRecord(
            timestamp=datetime.utcnow(),
            usage_type=request.usage_type,
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost_usd=estimate_cost(input_tokens, output_tokens, model),
            duration_ms=duration_ms,
            success=error is None,
            error_message=str(error)[:500] if error else None,
            org_id=context.get("org_id"),
            request_id=context.get("request_id"),
            endpoint=context.get("endpoint"),
        )

    def log_call(
        self,
        request: LLMRequest,
        response: Optional[LLMResponse],
        duration_ms: Optional[int],
        error: Optional[BaseException] = None,
    ) -> None:
        """Persist a usage row without blocking the caller."""
        if not self.enable_logging:
            return

        record = self._create_call_record(request, response, duration_ms, error)
        logger.debug(
            f"LLM call logged: {record.usage_type} {record.model} "
            f"({record.input_tokens}+{record.output_tokens} tokens, success={record.success})"
        )
        self._save_record_to_db(record)

    def _save_record_to_db(self, record: LLMCallRecord) -> None:
        """
        Save a single call record to the ai_usage_log table.

        Schedules a task on the running loop, or runs in a thread when
        called outside of one.
        """

        async def _do_save():
            from database.session import get_session
            from database.models import AIUsageLog

            try:
                async with get_session() as session:
                    session.add(AIUsageLog(
                        usage_type=record.usage_type,
                        model=record.model,
                        input_tokens=record.input_tokens,
                        output_tokens=record.output_tokens,
                        cost_usd=record.cost_usd,
                        endpoint=record.endpoint,
                        request_id=record.request_id,
                        duration_ms=record.duration_ms,
                        success=record.success,
                        error_message=record.error_message,
                        org_id=record.org_id,
                        created_at=record.timestamp,
                    ))
            except Exception as e:
                logger.error(f"Failed to save AI usage log: {e}")

        try:
            loop = asyncio.get_running_loop()
            loop.create_task(_do_save())
        except RuntimeError:
            thread = threading.Thread(target=lambda: asyncio.run(_do_save()), daemon=True)
            thread.start()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(model={self.model})"
