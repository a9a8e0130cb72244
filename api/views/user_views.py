from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response
from django.core.exceptions import ObjectDoesNotExist

from ..services import UserService
from ..serializers import PullRequestShortSerializer, SetIsActiveRequestSerializer, UserSerializer
from .common import error_response, server_error_response, validation_error_response


@api_view(['POST'])
def user_set_active(request):
    """POST /users/setIsActive - Установить флаг активности пользователя"""
    try:
        payload = SetIsActiveRequestSerializer(data=request.data)
        if not payload.is_valid():
            return validation_error_response(payload.errors)

        user = UserService.set_user_active_status(
            payload.validated_data['user_id'],
            payload.validated_data['is_active'],
        )
        serializer = UserSerializer(user)

        return Response({
            'user': serializer.data
        })

    except ObjectDoesNotExist:
        return error_response('NOT_FOUND', 'User not found', status.HTTP_404_NOT_FOUND)
    except Exception:
        return server_error_response('user_set_active')


@api_view(['GET'])
def users_get_review(request):
    """GET /users/getReview - Получить PR'ы, где пользователь назначен ревьювером"""
    try:
        user_id = request.query_params.get('user_id')

        if not user_id:
            return error_response(
                'VALIDATION_ERROR', 'user_id parameter is required', status.HTTP_400_BAD_REQUEST
            )

        assigned_prs = UserService.get_user_review_assignments(user_id)
        serializer = PullRequestShortSerializer(assigned_prs, many=True)

        return Response({
            'user_id': user_id,
            'pull_requests': serializer.data
        })

    except ObjectDoesNotExist:
        return error_response('NOT_FOUND', 'User not found', status.HTTP_404_NOT_FOUND)
    except Exception:
        return server_error_response('users_get_review')
