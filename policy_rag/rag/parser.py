"""LlamaParse client for PDF-to-markdown conversion.

Uploads a document, then polls the asynchronous parsing job on a fixed
interval until markdown is available or the attempt budget runs out.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum as PyEnum

import httpx

from policy_rag.core.errors import ExtractionError, OperationCancelledError, ParsingTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.cloud.llamaindex.ai/api/v1"


class ParseJobState(str, PyEnum):
    """Lifecycle of a parsing job."""

    SUBMITTED = "submitted"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


_TRANSITIONS: dict[ParseJobState, frozenset[ParseJobState]] = {
    ParseJobState.SUBMITTED: frozenset(
        {ParseJobState.POLLING, ParseJobState.SUCCEEDED, ParseJobState.FAILED}
    ),
    ParseJobState.POLLING: frozenset(
        {ParseJobState.SUCCEEDED, ParseJobState.TIMED_OUT, ParseJobState.FAILED}
    ),
    ParseJobState.SUCCEEDED: frozenset(),
    ParseJobState.TIMED_OUT: frozenset(),
    ParseJobState.FAILED: frozenset(),
}


@dataclass
class ParseJob:
    """A document submitted for parsing."""

    filename: str
    job_id: str | None = None
    state: ParseJobState = ParseJobState.SUBMITTED
    attempts: int = 0
    markdown: str | None = None
    error: str | None = None

    @property
    def done(self) -> bool:
        return not _TRANSITIONS[self.state]

    def transition(self, new_state: ParseJobState) -> None:
        """Move to *new_state*, rejecting transitions the lifecycle forbids."""
        if new_state not in _TRANSITIONS[self.state]:
            raise ValueError(f"Invalid parse job transition: {self.state.value} -> {new_state.value}")
        logger.debug(f"[LlamaParse] Job {self.job_id or self.filename}: {self.state.value} -> {new_state.value}")
        self.state = new_state

    def succeed(self, markdown: str) -> None:
        self.transition(ParseJobState.SUCCEEDED)
        self.markdown = markdown

    def fail(self, error: str) -> None:
        self.transition(ParseJobState.FAILED)
        self.error = error


class LlamaParseClient:
    """Async client for the LlamaParse parsing API.

    Args:
        api_key: LlamaCloud API key
        base_url: API root, without trailing slash
        poll_interval: Seconds to wait before each status poll
        max_attempts: Poll budget before the job is declared timed out
        http_client: Optional shared ``httpx.AsyncClient``
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        poll_interval: float = 5.0,
        max_attempts: int = 60,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self._http_client = http_client

    async def parse(
        self,
        content: bytes,
        filename: str,
        cancel_event: asyncio.Event | None = None,
    ) -> str:
        """Parse a PDF and return its markdown text.

        Raises:
            ExtractionError: Upload or polling failed
            ParsingTimeoutError: The job did not finish within the poll budget
            OperationCancelledError: ``cancel_event`` was set while waiting
        """
        async with self._client() as client:
            job = await self.submit(client, content, filename)
            if not job.done:
                await self.poll(client, job, cancel_event)

        logger.info(f"[LlamaParse] Parsed {filename}: {len(job.markdown or '')} characters")
        return job.markdown or ""

    async def submit(self, client: httpx.AsyncClient, content: bytes, filename: str) -> ParseJob:
        """Upload *content* and return the resulting job."""
        job = ParseJob(filename=filename)
        try:
            response = await client.post(
                f"{self.base_url}/parsing/upload",
                headers=self._headers(),
                files={"file": (filename, content, "application/pdf")},
                data={"result_type": "markdown"},
            )
        except httpx.HTTPError as e:
            job.fail(str(e))
            raise ExtractionError(f"LlamaParse upload failed: {e}") from e

        if response.is_error:
            job.fail(response.text)
            raise ExtractionError(f"LlamaParse API error: {response.status_code} - {response.text}")

        result = response.json()
        if result.get("id"):
            job.job_id = str(result["id"])
            logger.info(f"[LlamaParse] Submitted {filename} as job {job.job_id}")
            return job

        # Markdown returned directly
        if result.get("markdown"):
            job.succeed(result["markdown"])
            return job

        job.fail("Unexpected response format")
        raise ExtractionError("Unexpected response format from LlamaParse API")

    async def poll(
        self,
        client: httpx.AsyncClient,
        job: ParseJob,
        cancel_event: asyncio.Event | None = None,
    ) -> ParseJob:
        """Poll *job* until it succeeds, fails or exhausts the attempt budget."""
        job.transition(ParseJobState.POLLING)
        url = f"{self.base_url}/parsing/job/{job.job_id}/result/markdown"

        while job.attempts < self.max_attempts:
            await self._wait(job, cancel_event)
            job.attempts += 1

            try:
                response = await client.get(url, headers=self._headers())
            except httpx.HTTPError as e:
                job.fail(str(e))
                raise ExtractionError(f"Failed to poll job status: {e}") from e

            # Job might still be processing
            if response.status_code in (400, 404):
                continue
            if response.is_error:
                job.fail(f"HTTP {response.status_code}")
                raise ExtractionError(f"Failed to poll job status: {response.status_code}")

            result = response.json()
            if isinstance(result, str):
                job.succeed(result)
                return job
            if isinstance(result, dict) and result.get("markdown"):
                job.succeed(result["markdown"])
                return job

        job.transition(ParseJobState.TIMED_OUT)
        job.error = f"No result after {job.attempts} polls"
        raise ParsingTimeoutError("Polling timeout - parsing took too long")

    async def _wait(self, job: ParseJob, cancel_event: asyncio.Event | None) -> None:
        if cancel_event is None:
            await asyncio.sleep(self.poll_interval)
            return

        if not cancel_event.is_set():
            try:
                await asyncio.wait_for(cancel_event.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                return

        job.fail("cancelled")
        raise OperationCancelledError(f"Parsing of {job.filename} was cancelled")

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if not self.api_key:
            raise ExtractionError("LLAMA_CLOUD_API_KEY is not configured")

        if self._http_client is not None:
            yield self._http_client
            return

        async with httpx.AsyncClient(timeout=httpx.Timeout(60.0, connect=10.0)) as client:
            yield client
