# core.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, AsyncIterator, Dict, Optional, Tuple

from .config import Settings
from .errors import NotFoundError, EmptyTurnError, PersistenceError, StreamTimeoutError, TurnError
from .messages import ModelMessage, to_model_messages, triggering_user_content
from .prompt import build_system_prompt
from .schemas import TurnRequest, parse_turn_request
from .state import TurnStage, TurnState

if TYPE_CHECKING:  # pragma: no cover
    from backend.conversations import ConversationStore
    from backend.restaurants import RestaurantContext, RestaurantStore
    from .llm_openai import OpenAIChatStream

logger = logging.getLogger(__name__)

# Evaluation is not wired up yet; every assistant row gets the same payload.
PLACEHOLDER_SCORE = 100
PLACEHOLDER_EVALUATION: Dict[str, Any] = {"feedback": "Response followed policy.", "score": PLACEHOLDER_SCORE}


@dataclass(frozen=True)
class PreparedTurn:
    """Everything the stream and persist steps need; built before any model call."""

    restaurant_id: str
    conversation_id: str
    system_prompt: str
    messages: Tuple[ModelMessage, ...]
    user_content: str
    state: Optional[TurnState] = field(default=None, compare=False, repr=False)


class ConversationOrchestrator:
    """
    Turns a client transcript into a streamed, policy-grounded reply and
    records the exchange once the stream has finished.

    receive -> load -> assemble happen in ``prepare``; nothing reaches the
    completion service until all three succeed. ``stream`` forwards tokens
    and then calls ``persist``.
    """

    def __init__(
        self,
        restaurants: "RestaurantStore",
        conversations: "ConversationStore",
        completions: "OpenAIChatStream",
        settings: Optional[Settings] = None,
    ) -> None:
        self.restaurants = restaurants
        self.conversations = conversations
        self.completions = completions
        self.settings = settings or Settings()

    # ------------------------------------------------------------------
    def receive(self, payload: Any) -> TurnRequest:
        return parse_turn_request(payload, max_messages=self.settings.max_messages)

    async def load(self, request: TurnRequest) -> "RestaurantContext":
        conversation, context = await asyncio.gather(
            asyncio.to_thread(self.conversations.get_owned, request.conversationId, request.restaurantId),
            asyncio.to_thread(self.restaurants.load_context, request.restaurantId),
        )
        if context is None:
            raise NotFoundError("Restaurant not found")
        if conversation is None:
            raise NotFoundError("Conversation not found or does not belong to this restaurant")
        return context

    def assemble(
        self, request: TurnRequest, context: "RestaurantContext", state: Optional[TurnState] = None
    ) -> PreparedTurn:
        messages = to_model_messages(request.messages)
        if not messages:
            raise EmptyTurnError()
        return PreparedTurn(
            restaurant_id=request.restaurantId,
            conversation_id=request.conversationId,
            system_prompt=build_system_prompt(context),
            messages=tuple(messages),
            user_content=triggering_user_content(messages),
            state=state,
        )

    async def prepare(self, payload: Any) -> PreparedTurn:
        request = self.receive(payload)
        state = TurnState(restaurant_id=request.restaurantId, conversation_id=request.conversationId)
        try:
            context = await self.load(request)
            state.advance(TurnStage.LOADED)
            turn = self.assemble(request, context, state)
        except TurnError as exc:
            state.fail(exc.message)
            logger.info("Turn rejected before streaming %s", state.as_log())
            raise
        state.advance(TurnStage.ASSEMBLED)
        logger.debug("Prepared turn %s messages=%d", state.as_log(), len(turn.messages))
        return turn

    # ------------------------------------------------------------------
    async def stream(self, turn: PreparedTurn) -> AsyncIterator[str]:
        """Forward reply tokens, then persist the turn if the stream finished.

        The whole stream shares one wall-clock budget. Tokens already sent
        stay sent when it runs out. Closing this generator early (client
        went away) closes the upstream call and skips persistence.
        """
        state = turn.state or TurnState(restaurant_id=turn.restaurant_id, conversation_id=turn.conversation_id)
        state.advance(TurnStage.STREAMING)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.settings.stream_timeout
        upstream = self.completions.stream(turn.system_prompt, turn.messages)
        try:
            while True:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    raise StreamTimeoutError(f"Reply exceeded {self.settings.stream_timeout:g}s")
                try:
                    chunk = await asyncio.wait_for(upstream.__anext__(), timeout=remaining)
                except StopAsyncIteration:
                    break
                except asyncio.TimeoutError:
                    raise StreamTimeoutError(f"Reply exceeded {self.settings.stream_timeout:g}s") from None
                state.remember_chunk(chunk)
                yield chunk
        except (asyncio.CancelledError, GeneratorExit):
            state.advance(TurnStage.CANCELLED)
            logger.info("Turn cancelled by client %s", state.as_log())
            raise
        except TurnError as exc:
            state.fail(exc.message)
            logger.warning("Turn failed during streaming %s", state.as_log())
            raise
        finally:
            # a repeated cancel on disconnect must not interrupt closing the provider stream
            await asyncio.shield(upstream.aclose())

        state.advance(TurnStage.STREAMED)
        if await self.persist(turn, state.reply):
            state.advance(TurnStage.PERSISTED)
        logger.info("Turn finished %s", state.as_log())

    async def persist(self, turn: PreparedTurn, reply: str) -> bool:
        """Write the user row and the assistant row atomically.

        Failures are logged and reported through the return value only; the
        reply has already reached the client.
        """
        try:
            await asyncio.to_thread(
                self.conversations.append_turn,
                turn.conversation_id,
                turn.user_content,
                reply,
                score_total=PLACEHOLDER_SCORE,
                evaluation=dict(PLACEHOLDER_EVALUATION),
            )
        except PersistenceError:
            logger.exception("Failed to save messages for conversation %s", turn.conversation_id)
            return False
        return True


__all__ = ["ConversationOrchestrator", "PreparedTurn", "PLACEHOLDER_SCORE", "PLACEHOLDER_EVALUATION"]
