"""
Core Views for AgentSpace Deals Backend

Contains the health check endpoint.
"""
from django.db import DatabaseError, connection
from django.http import JsonResponse
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny


@api_view(['GET'])
@permission_classes([AllowAny])
def health_check(request):
    """
    Health check endpoint for deployment verification.

    Returns:
        - 200: Service is healthy
        - 503: Service is unhealthy (database connection failed)
    """
    response_data = {
        'status': 'healthy',
        'service': 'agentspace-deals',
        'database': 'unknown',
    }

    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
            cursor.fetchone()
        response_data['database'] = 'connected'
    except DatabaseError as e:
        response_data['status'] = 'unhealthy'
        response_data['database'] = f'error: {e}'
        return JsonResponse(response_data, status=503)

    return JsonResponse(response_data)
