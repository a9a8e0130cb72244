from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response
from django.core.exceptions import ObjectDoesNotExist

from ..exceptions import InvalidRequest, TeamExists
from ..services import TeamService
from ..serializers import (
    BulkDeactivateRequestSerializer,
    BulkDeactivationSerializer,
    TeamAddRequestSerializer,
    TeamSerializer,
)
from .common import error_response, server_error_response, validation_error_response


@api_view(['POST'])
def team_add(request):
    """POST /team/add - Создать команду с участниками"""
    try:
        payload = TeamAddRequestSerializer(data=request.data)
        if not payload.is_valid():
            return validation_error_response(payload.errors)

        team = TeamService().create_team_with_members(
            payload.validated_data['team_name'],
            payload.validated_data['members'],
        )
        serializer = TeamSerializer(team)

        return Response({
            'team': serializer.data
        }, status=status.HTTP_201_CREATED)

    except TeamExists as e:
        return error_response(e.code, e.message, status.HTTP_400_BAD_REQUEST)
    except Exception:
        return server_error_response('team_add')


@api_view(['GET'])
def team_get(request):
    """GET /team/get - Получить команду с участниками"""
    try:
        team_name = request.query_params.get('team_name')

        if not team_name:
            return error_response(
                'VALIDATION_ERROR', 'team_name parameter is required', status.HTTP_400_BAD_REQUEST
            )

        team = TeamService().get_team_with_members(team_name)
        serializer = TeamSerializer(team)

        return Response(serializer.data)

    except ObjectDoesNotExist:
        return error_response('NOT_FOUND', 'Team not found', status.HTTP_404_NOT_FOUND)
    except Exception:
        return server_error_response('team_get')


@api_view(['POST'])
def team_deactivate_users(request):
    """POST /team/deactivateUsers - Массово деактивировать участников и переназначить их открытые ревью"""
    try:
        payload = BulkDeactivateRequestSerializer(data=request.data)
        if not payload.is_valid():
            return validation_error_response(payload.errors)

        result = TeamService().bulk_deactivate_team_members(
            payload.validated_data['team_name'],
            payload.validated_data['user_ids'],
        )
        serializer = BulkDeactivationSerializer(result)

        return Response(serializer.data)

    except ObjectDoesNotExist as e:
        return error_response('NOT_FOUND', str(e), status.HTTP_404_NOT_FOUND)
    except InvalidRequest as e:
        return error_response(e.code, e.message, status.HTTP_400_BAD_REQUEST)
    except Exception:
        return server_error_response('team_deactivate_users')
