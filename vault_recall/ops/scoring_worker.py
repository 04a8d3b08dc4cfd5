"""
Out-of-process memory scoring.

A ScoringExecutor owns one worker process and a pipe. The worker keeps the
last memory payload it received, so repeated calls over an unchanged memory
set only send the query. The payload is resent when the caller flags a change
or when the content fingerprint differs from the last one sent.

Protocol (one request, one reply):
    request  {memories?, changed, query_embedding, chat_length, limit,
              constants, settings, query_tokens}
    reply    {success: True, results: [{index, score, breakdown}, ...]}
             {success: False, error: str}
"""

import asyncio
import logging
import multiprocessing as mp
import threading
from typing import Any, Dict, List, Optional, Sequence

from ..config.settings import ForgettingConstants, ScoringSettings
from ..memory.schemas import MemoryEvent, ScoreBreakdown, ScoredMemory
from ..persist.hashing import memories_fingerprint

logger = logging.getLogger(__name__)


class ExecutorBusyError(RuntimeError):
    """A second request was issued while one is still outstanding."""


class ScoringWorkerError(RuntimeError):
    """The worker replied with a failure or could not be reached."""


def _handle_request(request: Dict[str, Any], cached: Optional[List[MemoryEvent]]):
    # retrieval.orchestrator imports this module
    from ..retrieval.scoring import score_memories

    if request.get("memories") is not None:
        cached = [MemoryEvent.model_validate(m) for m in request["memories"]]
    if cached is None:
        raise ValueError("no memories cached; resend with memories")

    positions = {id(m): i for i, m in enumerate(cached)}
    scored = score_memories(
        cached,
        request.get("query_embedding"),
        int(request.get("chat_length") or 0),
        query_tokens=request.get("query_tokens") or [],
        constants=ForgettingConstants.model_validate(request.get("constants") or {}),
        settings=ScoringSettings.model_validate(request.get("settings") or {}),
    )
    limit = request.get("limit")
    if limit is not None:
        scored = scored[:limit]

    results = [
        {
            "index": positions[id(s.memory)],
            "score": s.score,
            "breakdown": s.breakdown.model_dump(),
        }
        for s in scored
    ]
    return cached, results


def _worker_main(conn) -> None:
    """Worker loop: serve requests until a None sentinel or a closed pipe."""
    cached: Optional[List[MemoryEvent]] = None
    while True:
        try:
            request = conn.recv()
        except (EOFError, OSError):
            break
        if request is None:
            break
        try:
            cached, results = _handle_request(request, cached)
            conn.send({"success": True, "results": results})
        except Exception as e:
            conn.send({"success": False, "error": f"{type(e).__name__}: {e}"})
    conn.close()


class ScoringExecutor:
    """
    Runs score_memories in a dedicated worker process.

    At most one request may be outstanding; a concurrent second call raises
    ExecutorBusyError instead of queueing. The worker is started lazily and
    restarted after a broken pipe.

    Usage:
        >>> async with ScoringExecutor() as executor:
        ...     scored = await executor.ascore(memories, query_vec, chat_length=120)
    """

    def __init__(self, start_method: str = "spawn", reply_timeout_s: float = 30.0):
        """
        Args:
            start_method: multiprocessing start method for the worker
            reply_timeout_s: Maximum wait for one reply
        """
        self._ctx = mp.get_context(start_method)
        self.reply_timeout_s = reply_timeout_s
        self._process = None
        self._conn = None
        self._fingerprint: Optional[str] = None
        self._busy = False
        self._state_lock = threading.Lock()

        # payload transfer counters
        self.payload_sends = 0
        self.requests = 0

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        parent_conn, child_conn = self._ctx.Pipe(duplex=True)
        process = self._ctx.Process(target=_worker_main, args=(child_conn,), daemon=True)
        process.start()
        child_conn.close()
        self._process = process
        self._conn = parent_conn
        self._fingerprint = None
        logger.debug(f"Scoring worker started (pid={process.pid})")

    def close(self) -> None:
        """Stop the worker process and release the pipe."""
        if self._conn is not None:
            try:
                self._conn.send(None)
            except (BrokenPipeError, OSError):
                pass
        if self._process is not None:
            self._process.join(timeout=2)
            if self._process.is_alive():
                self._process.terminate()
                self._process.join(timeout=2)
        if self._conn is not None:
            self._conn.close()
        self._process = None
        self._conn = None
        self._fingerprint = None

    def _acquire(self) -> None:
        with self._state_lock:
            if self._busy:
                raise ExecutorBusyError("scoring request already outstanding")
            self._busy = True

    def _release(self) -> None:
        with self._state_lock:
            self._busy = False

    def _round_trip(self, request: Dict[str, Any]) -> Dict[str, Any]:
        self.start()
        try:
            self._conn.send(request)
            if not self._conn.poll(self.reply_timeout_s):
                raise ScoringWorkerError(f"no reply within {self.reply_timeout_s}s")
            return self._conn.recv()
        except (EOFError, BrokenPipeError, OSError) as e:
            self.close()
            raise ScoringWorkerError(f"scoring worker unreachable: {e}") from e
        except ScoringWorkerError:
            # a late reply would desync the pipe
            self.close()
            raise

    def _score(
        self,
        memories: Sequence[MemoryEvent],
        query_embedding: Optional[Sequence[float]],
        chat_length: int,
        query_tokens: Optional[Sequence[str]],
        changed: bool,
        limit: Optional[int],
        constants: Optional[ForgettingConstants],
        settings: Optional[ScoringSettings],
    ) -> List[ScoredMemory]:
        payload = [m.model_dump(mode="json") for m in memories]
        fingerprint = memories_fingerprint(payload)
        request: Dict[str, Any] = {
            "changed": changed,
            "query_embedding": [float(x) for x in query_embedding] if query_embedding is not None else None,
            "chat_length": chat_length,
            "limit": limit,
            "constants": (constants or ForgettingConstants()).model_dump(),
            "settings": (settings or ScoringSettings()).model_dump(),
            "query_tokens": list(query_tokens or []),
        }
        send_payload = changed or fingerprint != self._fingerprint or not self.is_running
        if send_payload:
            request["memories"] = payload

        self.requests += 1
        response = self._round_trip(request)
        if not response.get("success"):
            self._fingerprint = None
            raise ScoringWorkerError(response.get("error") or "unknown worker error")

        if send_payload:
            self.payload_sends += 1
            self._fingerprint = fingerprint

        return [
            ScoredMemory(
                memory=memories[r["index"]],
                score=r["score"],
                breakdown=ScoreBreakdown.model_validate(r["breakdown"]),
            )
            for r in response["results"]
        ]

    def score(
        self,
        memories: Sequence[MemoryEvent],
        query_embedding: Optional[Sequence[float]] = None,
        chat_length: int = 0,
        query_tokens: Optional[Sequence[str]] = None,
        changed: bool = False,
        limit: Optional[int] = None,
        constants: Optional[ForgettingConstants] = None,
        settings: Optional[ScoringSettings] = None,
    ) -> List[ScoredMemory]:
        """
        Score memories in the worker (blocking).

        Args:
            memories: Candidate memories; results refer back to these objects
            query_embedding: Embedding of the enriched query, or None
            chat_length: Current conversation length in messages
            query_tokens: Boosted BM25 query tokens
            changed: Force a payload resend (memory content edited)
            limit: Keep only the top ``limit`` results
            constants: Forgetfulness curve constants
            settings: Bonus weights

        Returns:
            Scored memories, best first

        Raises:
            ExecutorBusyError: If another request is outstanding
            ScoringWorkerError: If the worker failed or is unreachable
        """
        self._acquire()
        try:
            return self._score(memories, query_embedding, chat_length, query_tokens,
                               changed, limit, constants, settings)
        finally:
            self._release()

    async def ascore(
        self,
        memories: Sequence[MemoryEvent],
        query_embedding: Optional[Sequence[float]] = None,
        chat_length: int = 0,
        query_tokens: Optional[Sequence[str]] = None,
        changed: bool = False,
        limit: Optional[int] = None,
        constants: Optional[ForgettingConstants] = None,
        settings: Optional[ScoringSettings] = None,
    ) -> List[ScoredMemory]:
        """
        Async variant of ``score``; the pipe round trip runs in a thread.

        The busy flag is cleared by that thread, so cancelling the awaiting
        task leaves the executor busy until the round trip has finished.
        """
        self._acquire()

        def run() -> List[ScoredMemory]:
            try:
                return self._score(memories, query_embedding, chat_length, query_tokens,
                                   changed, limit, constants, settings)
            finally:
                self._release()

        try:
            future = asyncio.get_running_loop().run_in_executor(None, run)
        except BaseException:
            self._release()
            raise
        return await future

    def __enter__(self) -> "ScoringExecutor":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    async def __aenter__(self) -> "ScoringExecutor":
        return self

    async def __aexit__(self, *exc) -> None:
        await asyncio.to_thread(self.close)
