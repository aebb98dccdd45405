"""
AI API Views

Endpoints:
- POST /api/ai/tools/{tool_name} - Execute one assistant tool
- POST /api/ai/chat - Chat with the assistant (tool calling)
"""
import logging

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.mixins import AuthenticatedAPIView

from .services import generate_chat_response
from .tools import TOOL_REGISTRY, execute_tool_call

logger = logging.getLogger(__name__)


class AIToolView(AuthenticatedAPIView, APIView):
    """
    POST /api/ai/tools/{tool_name}

    Body is the tool's parameter object. Tool failures are returned as
    {"error": "..."} with status 200 unless the tool is unknown (404).
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, tool_name):
        user = self.get_user(request)

        params = request.data if isinstance(request.data, dict) else {}
        result = execute_tool_call(tool_name, dict(params), user)
        if tool_name not in TOOL_REGISTRY:
            return Response(result, status=status.HTTP_404_NOT_FOUND)
        return Response(result)


class AIChatView(AuthenticatedAPIView, APIView):
    """POST /api/ai/chat - Chat with the agency assistant."""

    permission_classes = [IsAuthenticated]

    def post(self, request):
        user = self.get_user(request)

        content = request.data.get('content') or request.data.get('message')
        if not content or not str(content).strip():
            return Response(
                {'error': 'content is required'},
                status=status.HTTP_400_BAD_REQUEST
            )

        history = request.data.get('history') or []
        if not isinstance(history, list):
            return Response({'error': 'history must be a list'}, status=status.HTTP_400_BAD_REQUEST)

        ai_response = generate_chat_response(
            user=user,
            user_message=str(content).strip(),
            history=[m for m in history if isinstance(m, dict)],
        )

        return Response({
            'response': ai_response.content,
            'tool_calls': ai_response.tool_calls,
            'visualizations': ai_response.visualizations,
            'tokens': {
                'input': ai_response.input_tokens,
                'output': ai_response.output_tokens,
                'total': ai_response.total_tokens,
            },
            'error': ai_response.error,
        })
