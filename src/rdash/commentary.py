"""
AI commentary for forecasts and customer support chat.

This module builds the prompts sent to Google Gemini and parses its replies.
The forecasting core never depends on these replies; any failure of the AI
service surfaces as a CommentaryError.
"""

import html
import json
import logging
import re
from typing import List, Optional, Sequence

from google import genai
from google.genai import types

from .constants import ForecastModel, CHAT_HISTORY_MESSAGES, DEFAULT_AI_MODEL
from .schemas import ChatMessage, ForecastInsights, Order

logger = logging.getLogger(__name__)

ORDER_ID_PATTERN = re.compile(r"(?:order|id|#)\s*(\d+)", re.IGNORECASE)

FALLBACK_CHAT_REPLY = (
    "I'm sorry, but I'm having trouble connecting to my brain right now. "
    "Please try again in a moment."
)
GREETING = "Hello! I'm your customer support assistant. How can I help you with an order today?"

INSIGHT_DEFAULTS = {
    "reasoning": "Analysis could not be generated.",
    "pricingStrategy": "Pricing suggestion could not be generated.",
    "marketingSuggestion": "Marketing suggestion could not be generated.",
    "inventorySuggestion": "Inventory suggestion could not be generated.",
}

INSIGHTS_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "reasoning": types.Schema(
            type=types.Type.STRING,
            description="A brief, one-sentence explanation for the forecast based on historical trends "
                        "(e.g., growth, decline, stability, seasonality)."
        ),
        "pricingStrategy": types.Schema(
            type=types.Type.STRING,
            description="A specific, one-sentence pricing suggestion. Examples: 'Offer a 15% weekend "
                        "discount to capture impulse buys.' or 'Maintain premium pricing to match the "
                        "strong, consistent demand.'"
        ),
        "marketingSuggestion": types.Schema(
            type=types.Type.STRING,
            description="A creative, one-sentence marketing idea to either boost sales or manage high "
                        "demand. Examples: 'Launch a targeted social media ad campaign highlighting the "
                        "product's benefits.' or 'Promote product bundles to increase average order value.'"
        ),
        "inventorySuggestion": types.Schema(
            type=types.Type.STRING,
            description="A practical, one-sentence inventory recommendation. Examples: 'Increase stock "
                        "by 10% to meet the anticipated demand and avoid stockouts.' or 'Consider a "
                        "just-in-time ordering strategy to reduce holding costs during this slow period.'"
        ),
    },
    required=list(INSIGHT_DEFAULTS),
)


class CommentaryError(RuntimeError):
    """The AI service failed to produce a reply."""


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def build_analysis_prompt(
    product: str,
    history: Sequence[float],
    demand_forecast: float,
    model: ForecastModel
) -> str:
    """Prompt asking for business advice on a product forecast."""
    history_text = ", ".join(_format_number(v) for v in history)
    return (
        f'Analyze the following sales data and forecast for the product "{product}" '
        "and provide strategic suggestions.\n\n"
        f"**Forecasting Model Used:** {model.label}\n"
        f"**Historical Monthly Sales Data (oldest to newest):** {history_text}\n"
        f"**Statistical Demand Forecast for Next Month:** {_format_number(demand_forecast)} units\n\n"
        "Based on this information, provide a JSON object with concise, actionable business advice."
    )


def parse_insights(text: str) -> ForecastInsights:
    """
    Parse the JSON reply of a forecast analysis.

    Missing or empty fields are replaced by placeholder sentences.

    Raises:
        ValueError: If the reply is not a JSON object
    """
    payload = json.loads(text.strip())
    if not isinstance(payload, dict):
        raise ValueError("Analysis reply is not a JSON object")

    fields = {
        key: payload.get(key) if isinstance(payload.get(key), str) and payload.get(key) else default
        for key, default in INSIGHT_DEFAULTS.items()
    }
    return ForecastInsights.model_validate(fields)


def insight_card_html(title: str, text: str) -> str:
    """HTML for one insight card; the AI text is escaped before it reaches the markup."""
    return f'<div class="insight-card"><b>{html.escape(title)}</b><br/>{html.escape(text)}</div>'


def extract_order_id(text: str) -> Optional[str]:
    """Find an order number mentioned in a chat message ("order 1234", "#1234")."""
    match = ORDER_ID_PATTERN.search(text)
    return match.group(1) if match else None


def build_support_instruction(order: Optional[Order]) -> str:
    """System instruction for the support assistant, with the order context if known."""
    if order is not None:
        items = "\n".join(
            f"  - {_format_number(item.quantity)}x {item.name} ({item.category}) "
            f"at {_format_number(item.unit_price)} each"
            for item in order.items
        )
        order_context = (
            "Here is the customer's order information:\n"
            f"- Order ID: {order.id}\n"
            f"- Customer Name: {order.customer_name}\n"
            f"- Status: {order.status.value}\n"
            f"- Order Date: {order.order_date}\n"
            f"- Estimated Delivery: {order.estimated_delivery}\n"
            f"- Total Value: {_format_number(order.total_order_value)}\n"
            f"- Return Policy: {order.return_policy}\n"
            f"- Items:\n{items}"
        )
    else:
        order_context = (
            "The user did not provide a valid order ID, or it could not be found. "
            "You must ask them for a valid order ID if their question requires one."
        )

    return (
        "You are a helpful and friendly customer support assistant for a retail company.\n"
        "Your tone should be empathetic and professional.\n"
        "Use the provided order details to answer the user's question accurately.\n"
        "Reference the conversation history to understand the context of the user's query.\n"
        "Do not make up information. If the order details don't answer the question, say so.\n"
        "Keep your answers concise and to the point.\n"
        f"{order_context}"
    )


def to_gemini_contents(
    history: Sequence[ChatMessage],
    query: str,
    limit: int = CHAT_HISTORY_MESSAGES
) -> List[types.Content]:
    """Map the last `limit` transcript messages and the new query to Gemini conversation turns."""
    recent = list(history)[-limit:] if limit > 0 else []
    contents = [
        types.Content(
            role="user" if message.sender == "user" else "model",
            parts=[types.Part(text=message.text)]
        )
        for message in recent
    ]
    contents.append(types.Content(role="user", parts=[types.Part(text=query)]))
    return contents


class CommentaryService:
    """Gemini backed forecast analysis and support replies."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_AI_MODEL,
        analysis_temperature: float = 0.7,
        chat_temperature: float = 0.5,
        history_messages: int = CHAT_HISTORY_MESSAGES,
        client: Optional[genai.Client] = None
    ):
        self.api_key = api_key
        self.model = model
        self.analysis_temperature = analysis_temperature
        self.chat_temperature = chat_temperature
        self.history_messages = history_messages
        self._client = client

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def analyze_forecast(
        self,
        product: str,
        history: Sequence[float],
        demand_forecast: float,
        model: ForecastModel
    ) -> ForecastInsights:
        """
        Generate qualitative analysis and pricing suggestions for a forecast.

        Raises:
            CommentaryError: If the AI service fails or replies with malformed JSON
        """
        prompt = build_analysis_prompt(product, history, demand_forecast, model)

        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=[types.Content(role="user", parts=[types.Part(text=prompt)])],
                config=types.GenerateContentConfig(
                    temperature=self.analysis_temperature,
                    response_mime_type="application/json",
                    response_schema=INSIGHTS_SCHEMA,
                ),
            )
            return parse_insights(response.text or "")
        except Exception as e:
            logger.error(f"Gemini API error in analyze_forecast: {e}")
            raise CommentaryError("Failed to get analysis from the AI service.") from e

    async def support_reply(
        self,
        query: str,
        order: Optional[Order],
        history: Sequence[ChatMessage] = ()
    ) -> str:
        """
        Generate a customer support reply.

        Raises:
            CommentaryError: If the AI service fails
        """
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=to_gemini_contents(history, query, self.history_messages),
                config=types.GenerateContentConfig(
                    system_instruction=build_support_instruction(order),
                    temperature=self.chat_temperature,
                ),
            )
        except Exception as e:
            logger.error(f"Gemini API error in support_reply: {e}")
            raise CommentaryError("Failed to get a response from the AI service.") from e

        if not response.text:
            raise CommentaryError("Failed to get a response from the AI service.")
        return response.text
