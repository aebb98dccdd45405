"""
AI Services

Chat with the agency assistant. The model may call the tools in
apps.ai.tools; each round's tool results are fed back until the model
answers in plain text or the round limit is reached.
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Optional

from django.conf import settings
from openai import OpenAI

from apps.core.authentication import AuthenticatedUser

from .tools import execute_tool_call

logger = logging.getLogger(__name__)

MAX_TOOL_ROUNDS = 5
# Characters of serialized tool output sent back to the model per call
TOOL_RESULT_CHAR_LIMIT = 12000
TRUNCATION_SUFFIX = '... [truncated]'

CHAT_SYSTEM_PROMPT = """You are an AI assistant for AgentSpace, an insurance agency management platform.
You help insurance agents with:
- Understanding their book of business
- Answering questions about deals, carriers, products and agents
- Summarizing agency production

Use the provided tools to look up data instead of guessing. Be concise,
professional, and data-driven. When referencing specific data, cite the
numbers clearly. If a tool returns an error, tell the user plainly."""

_FILTER_PROPERTIES = {
    'status': {'type': 'string', 'description': "Standardized status, or 'all'"},
    'agent_id': {'type': 'string', 'description': 'Agent UUID'},
    'carrier_id': {'type': 'string', 'description': 'Carrier UUID'},
    'start_date': {'type': 'string', 'description': 'Created on or after (YYYY-MM-DD)'},
    'end_date': {'type': 'string', 'description': 'Created on or before (YYYY-MM-DD)'},
}

TOOL_DEFINITIONS = [
    {
        'type': 'function',
        'function': {
            'name': 'get_deals',
            'description': 'Deals for the agency with summary totals. Returns at most 20 rows.',
            'parameters': {
                'type': 'object',
                'properties': {**_FILTER_PROPERTIES, 'limit': {'type': 'integer'}},
            },
        },
    },
    {
        'type': 'function',
        'function': {
            'name': 'get_deals_paginated',
            'description': 'Page through deals newest first. Pass next_cursor back as cursor.',
            'parameters': {
                'type': 'object',
                'properties': {
                    **_FILTER_PROPERTIES,
                    'limit': {'type': 'integer', 'maximum': 200},
                    'cursor': {
                        'type': 'object',
                        'properties': {
                            'cursor_created_at': {'type': 'string'},
                            'cursor_id': {'type': 'string'},
                        },
                    },
                },
            },
        },
    },
    {
        'type': 'function',
        'function': {
            'name': 'get_agents',
            'description': 'Agents ranked by production. Returns at most 25 rows.',
            'parameters': {
                'type': 'object',
                'properties': {'agent_id': {'type': 'string'}, 'limit': {'type': 'integer'}},
            },
        },
    },
    {
        'type': 'function',
        'function': {
            'name': 'get_carriers_and_products',
            'description': 'Carriers and the products the agency sells for them.',
            'parameters': {
                'type': 'object',
                'properties': {'carrier_id': {'type': 'string'}, 'active_only': {'type': 'boolean'}},
            },
        },
    },
    {
        'type': 'function',
        'function': {
            'name': 'get_agency_summary',
            'description': 'Agency production totals and recent activity.',
            'parameters': {
                'type': 'object',
                'properties': {
                    'time_period': {
                        'type': 'string',
                        'enum': ['all', 'current_month', 'last_month', 'ytd'],
                    },
                },
            },
        },
    },
    {
        'type': 'function',
        'function': {
            'name': 'create_visualization',
            'description': 'Ask the UI to render a chart from data already retrieved.',
            'parameters': {
                'type': 'object',
                'properties': {
                    'type': {'type': 'string', 'enum': ['bar', 'line', 'pie', 'table']},
                    'title': {'type': 'string'},
                    'description': {'type': 'string'},
                    'data_source': {'type': 'string'},
                    'config': {'type': 'object'},
                },
                'required': ['type', 'title'],
            },
        },
    },
]


@dataclass
class AIResponse:
    """Response from AI service."""
    content: str
    role: str = 'assistant'
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    tool_calls: list[dict] = field(default_factory=list)
    visualizations: list[dict] = field(default_factory=list)
    error: Optional[str] = None


def get_openai_client() -> Optional[OpenAI]:
    """Get configured OpenAI client."""
    if not settings.OPENAI_API_KEY:
        logger.warning('OPENAI_API_KEY not configured')
        return None
    return OpenAI(api_key=settings.OPENAI_API_KEY)


def truncate_tool_result(result: dict, limit: int = TOOL_RESULT_CHAR_LIMIT) -> str:
    """Serialize a tool result, cutting it to the character budget."""
    text = json.dumps(result, default=str)
    if len(text) <= limit:
        return text
    return text[:limit - len(TRUNCATION_SUFFIX)] + TRUNCATION_SUFFIX


def _parse_arguments(raw: str | None) -> dict:
    try:
        parsed = json.loads(raw or '{}')
    except json.JSONDecodeError:
        return {}
    return parsed if isinstance(parsed, dict) else {}


def generate_chat_response(
    user: AuthenticatedUser,
    user_message: str,
    history: Optional[list[dict]] = None,
    client: Optional[OpenAI] = None,
) -> AIResponse:
    """
    Answer a chat message, running tool calls the model asks for.

    Args:
        user: The authenticated user; tools are scoped to their agency
        user_message: The user's message
        history: Earlier {'role', 'content'} turns of the conversation
        client: OpenAI client (defaults to get_openai_client())

    Returns:
        AIResponse with generated content and token usage
    """
    client = client or get_openai_client()
    if not client:
        return AIResponse(
            content="AI features are not configured. Please contact support.",
            error="OPENAI_API_KEY not configured"
        )

    messages = [{"role": "system", "content": CHAT_SYSTEM_PROMPT}]
    for msg in history or []:
        if msg.get('role') in ('user', 'assistant') and msg.get('content'):
            messages.append({"role": msg['role'], "content": msg['content']})
    messages.append({"role": "user", "content": user_message})

    result = AIResponse(content='')
    try:
        for round_number in range(MAX_TOOL_ROUNDS + 1):
            response = client.chat.completions.create(
                model=settings.OPENAI_MODEL,
                messages=messages,
                tools=TOOL_DEFINITIONS,
                temperature=0.3,
            )
            usage = response.usage
            if usage:
                result.input_tokens += usage.prompt_tokens
                result.output_tokens += usage.completion_tokens
                result.total_tokens += usage.total_tokens

            message = response.choices[0].message
            if not message.tool_calls:
                result.content = message.content or ''
                return result

            if round_number == MAX_TOOL_ROUNDS:
                break

            messages.append({
                "role": "assistant",
                "content": message.content,
                "tool_calls": [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {"name": call.function.name, "arguments": call.function.arguments},
                    }
                    for call in message.tool_calls
                ],
            })
            for call in message.tool_calls:
                params = _parse_arguments(call.function.arguments)
                tool_result = execute_tool_call(call.function.name, params, user)
                result.tool_calls.append({'name': call.function.name, 'params': params})
                if tool_result.get('_visualization'):
                    result.visualizations.append(tool_result)
                messages.append({
                    "role": "tool",
                    "tool_call_id": call.id,
                    "content": truncate_tool_result(tool_result),
                })

    except Exception as e:
        logger.error(f"OpenAI API error: {e}")
        return AIResponse(
            content="I encountered an error processing your request. Please try again.",
            error=str(e)
        )

    logger.warning(f'AI chat for user {user.id} hit the tool round limit')
    result.content = "I couldn't finish looking that up. Please try a more specific question."
    result.error = 'Tool round limit reached'
    return result
