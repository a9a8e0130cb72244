from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response
from django.core.exceptions import ObjectDoesNotExist

from ..exceptions import AssignmentConflict
from ..services import PullRequestService
from ..serializers import (
    PullRequestCreateRequestSerializer,
    PullRequestMergeRequestSerializer,
    PullRequestReassignRequestSerializer,
    PullRequestSerializer,
)
from .common import error_response, server_error_response, validation_error_response


@api_view(['POST'])
def pullrequest_create(request):
    """POST /pullRequest/create - Создать PR"""
    try:
        payload = PullRequestCreateRequestSerializer(data=request.data)
        if not payload.is_valid():
            return validation_error_response(payload.errors)

        pr = PullRequestService().create_pull_request(
            payload.validated_data['pull_request_id'],
            payload.validated_data['pull_request_name'],
            payload.validated_data['author_id'],
        )
        serializer = PullRequestSerializer(pr)

        return Response({
            'pr': serializer.data
        }, status=status.HTTP_201_CREATED)

    except ObjectDoesNotExist as e:
        return error_response('NOT_FOUND', str(e), status.HTTP_404_NOT_FOUND)
    except AssignmentConflict as e:
        return error_response(e.code, e.message, status.HTTP_409_CONFLICT)
    except Exception:
        return server_error_response('pullrequest_create')


@api_view(['POST'])
def pullrequest_merge(request):
    """POST /pullRequest/merge - Пометить PR как MERGED"""
    try:
        payload = PullRequestMergeRequestSerializer(data=request.data)
        if not payload.is_valid():
            return validation_error_response(payload.errors)

        pr = PullRequestService().merge_pull_request(payload.validated_data['pull_request_id'])
        serializer = PullRequestSerializer(pr)

        return Response({
            'pr': serializer.data
        })

    except ObjectDoesNotExist:
        return error_response('NOT_FOUND', 'PR not found', status.HTTP_404_NOT_FOUND)
    except Exception:
        return server_error_response('pullrequest_merge')


@api_view(['POST'])
def pullrequest_reassign(request):
    """POST /pullRequest/reassign - Переназначить ревьювера"""
    try:
        payload = PullRequestReassignRequestSerializer(data=request.data)
        if not payload.is_valid():
            return validation_error_response(payload.errors)

        pr, new_reviewer_id = PullRequestService().reassign_reviewer(
            payload.validated_data['pull_request_id'],
            payload.validated_data['old_user_id'],
        )
        serializer = PullRequestSerializer(pr)

        return Response({
            'pr': serializer.data,
            'replaced_by': new_reviewer_id
        })

    except ObjectDoesNotExist:
        return error_response('NOT_FOUND', 'PR or user not found', status.HTTP_404_NOT_FOUND)
    except AssignmentConflict as e:
        return error_response(e.code, e.message, status.HTTP_409_CONFLICT)
    except Exception:
        return server_error_response('pullrequest_reassign')
