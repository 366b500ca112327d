"""
Infrastructure layer: OpenRouter client for chatting with a tree persona.
"""
import logging
from typing import Dict, List, Optional

from treeadopt.config import settings
from treeadopt.domain.exceptions import ExternalAPIError
from treeadopt.domain.models import TreeListing
from treeadopt.infrastructure.api_constants import APIConstants, OpenRouterEndpoints
from treeadopt.infrastructure.external_api_client import ExternalAPIClient


logger = logging.getLogger(__name__)

ChatMessage = Dict[str, str]

DEFAULT_LOCATION = "Community Garden, Delhi"


def build_tree_persona(tree: TreeListing) -> str:
    """Build the system prompt that makes the model speak as the tree."""
    benefits = tree.characteristics.get("environmental_benefits") or {}
    co2_rate = benefits.get("co2_absorption_rate", "52") if isinstance(benefits, dict) else "52"

    return (
        f"You are a friendly tree chatbot representing a {tree.scientific_name or 'Tree'} tree "
        f"(common name: {tree.common_name or 'Tree'}).\n"
        f"Location: {tree.location or DEFAULT_LOCATION}\n"
        f"Health: {tree.health_metrics.get('overall_health', 'Healthy')}\n"
        f"Growth Rate: {tree.characteristics.get('growth_rate', 'moderate')}\n"
        f"Environmental Impact: Absorbing {co2_rate}kg CO2/year\n\n"
        "Respond as if you are the tree itself. Be friendly, educational, and concise.\n"
        "Share interesting facts about your species and environmental impact.\n"
        "Use 1-2 emojis per message to make the conversation engaging.\n"
        "Keep responses under 100 words.\n"
        "Remember previous messages in the conversation to maintain context."
    )


def trim_history(history: List[ChatMessage], limit: int = APIConstants.CHAT_HISTORY_LIMIT) -> List[ChatMessage]:
    """Keep the system message plus the most recent ``limit - 1`` messages."""
    if len(history) <= limit:
        return history
    return [history[0], *history[-(limit - 1):]]


class TreeChatClient(ExternalAPIClient):
    """Client for the OpenRouter chat completions API."""

    def __init__(self):
        super().__init__(
            base_url=settings.openrouter_base_url,
            headers={
                "Authorization": f"Bearer {settings.openrouter_api_key}",
                "X-Title": "Tree Adoption Chat",
            },
        )
        self.model = settings.openrouter_model

    async def reply(
        self,
        tree: TreeListing,
        history: List[ChatMessage],
        message: str,
    ) -> str:
        """
        Send a user message and return the tree's reply.

        ``history`` is updated in place only when a reply comes back: it is
        seeded with the persona prompt, and the user message and reply are
        appended together.

        Raises:
            ExternalAPIError: If the API fails or returns no content
        """
        messages = list(history) or [{"role": "system", "content": build_tree_persona(tree)}]
        messages.append({"role": "user", "content": message})
        messages = trim_history(messages)

        data = await self._make_request(
            "POST",
            OpenRouterEndpoints.CHAT_COMPLETIONS,
            json={
                "model": self.model,
                "messages": messages,
                "temperature": APIConstants.CHAT_TEMPERATURE,
                "max_tokens": APIConstants.CHAT_MAX_TOKENS,
                "stream": False,
            },
        )

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not content:
            logger.error(f"Invalid response format from OpenRouter: {data}")
            raise ExternalAPIError("Invalid response format from OpenRouter")

        messages.append({"role": "assistant", "content": content})
        history[:] = messages
        return content


_chat_client: Optional[TreeChatClient] = None


def get_chat_client() -> TreeChatClient:
    global _chat_client
    if _chat_client is None:
        _chat_client = TreeChatClient()
    return _chat_client


async def close_chat_client() -> None:
    global _chat_client
    if _chat_client is not None:
        await _chat_client.close()
        _chat_client = None
