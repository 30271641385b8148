# agent/concierge/prompts.py
import json
from typing import Any, Dict

BOT_NAME = "Dukani"

SEARCH_FALLBACK_MESSAGE = (
    "I'm having trouble searching right now. "
    "Please try rephrasing your request or try again later."
)
SEARCH_TROUBLE_MESSAGE = "I'm having trouble with my search capabilities right now."

DEGRADED_MENU = """I can still help you with general information or recommendations based on common preferences. What specific type of assistance are you looking for?

🏨 Hotels
🍽️ Restaurants
✈️ Flights
🛍️ Products

Please try asking your question in a different way, and I'll do my best to help!"""

GENERIC_APOLOGY = (
    "I'm sorry, I'm having trouble processing your request right now. "
    "Please try again in a moment. 🤖"
)


def compose_degraded_message(fallback_message: str) -> str:
    return f"{fallback_message}\n\n{DEGRADED_MENU}"


def build_tool_selection_prompt(user_message: str, tools_reference: str) -> str:
    return f"""
You are a tool selection assistant. Based on the user's message, determine which tools should be used.

{tools_reference}

Rules:
- Always use 'profile' first to understand the user
- Use 'search' for any request involving finding/booking/recommendations
- When both are relevant, 'profile' must come before 'search'
- Return tools as a JSON array of strings
- Be concise

User message: "{user_message}"

Respond ONLY with a JSON array like: ["profile", "search"] or ["profile"]
"""


def build_search_params_prompt(user_message: str) -> str:
    return f"""
Extract search parameters from the user message. Return ONLY a valid JSON object with relevant fields.

Possible fields:
- query: main search term
- category: hotels, flights, restaurants, products, or general
- location: city/place for hotels/restaurants
- origin: departure city for flights
- destination: arrival city for flights or hotel location
- date: specific date mentioned
- budget: budget constraints mentioned
- cuisine: cuisine type for restaurants

Message: "{user_message}"

Return only valid JSON without any explanation or additional text:
"""


def render_tool_results(tool_results: Dict[str, Any]) -> str:
    blocks = []
    for tool, result in tool_results.items():
        if isinstance(result, (dict, list)):
            rendered = json.dumps(result, indent=2, ensure_ascii=False, default=str)
        else:
            rendered = str(result)
        blocks.append(f"{tool}: {rendered}")
    return "\n\n".join(blocks) if blocks else "No tools were used."


def build_responder_prompt(
    *,
    user_message: str,
    profile_summary: str,
    conversation_history: str,
    tool_results: Dict[str, Any],
) -> str:
    return f"""
You are {BOT_NAME}, a helpful AI concierge assistant for WhatsApp. You help users with travel, dining, and shopping recommendations.

User Profile: {profile_summary}

Conversation History:
{conversation_history}

Tool Results:
{render_tool_results(tool_results)}

Instructions:
- Be helpful, friendly, and conversational
- Use the tool results to provide specific recommendations
- Personalize based on user profile if available
- If search results are available, summarize the top 2-3 options
- Keep responses concise but informative
- Use emojis appropriately
- If booking is requested, provide clear next steps
- If there are any errors in the tool results, acknowledge them gracefully

User Message: "{user_message}"

Provide a helpful response:
"""
