from rest_framework import serializers
from .models import Team, User, PullRequest


class TeamMemberSerializer(serializers.ModelSerializer):
    user_id = serializers.CharField(source='id')
    username = serializers.CharField()
    is_active = serializers.BooleanField()

    class Meta:
        model = User
        fields = ['user_id', 'username', 'is_active']


class TeamSerializer(serializers.ModelSerializer):
    team_name = serializers.CharField(source='name')
    members = TeamMemberSerializer(many=True, source='members.all')

    class Meta:
        model = Team
        fields = ['team_name', 'members']


class UserSerializer(serializers.ModelSerializer):
    user_id = serializers.CharField(source='id')
    username = serializers.CharField()
    team_name = serializers.CharField(source='team.name')
    is_active = serializers.BooleanField()

    class Meta:
        model = User
        fields = ['user_id', 'username', 'team_name', 'is_active']


class PullRequestSerializer(serializers.ModelSerializer):
    pull_request_id = serializers.CharField(source='id')
    pull_request_name = serializers.CharField(source='name')
    author_id = serializers.CharField(source='author.id')
    status = serializers.CharField()
    assigned_reviewers = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source='created_at', format='%Y-%m-%dT%H:%M:%SZ')
    mergedAt = serializers.DateTimeField(source='merged_at', format='%Y-%m-%dT%H:%M:%SZ', allow_null=True)

    class Meta:
        model = PullRequest
        fields = [
            'pull_request_id', 'pull_request_name', 'author_id',
            'status', 'assigned_reviewers', 'createdAt', 'mergedAt'
        ]

    @staticmethod
    def get_assigned_reviewers(obj):
        return [reviewer.id for reviewer in obj.reviewers.all()]


class PullRequestShortSerializer(serializers.ModelSerializer):
    pull_request_id = serializers.CharField(source='id')
    pull_request_name = serializers.CharField(source='name')
    author_id = serializers.CharField(source='author.id')
    status = serializers.CharField()

    class Meta:
        model = PullRequest
        fields = ['pull_request_id', 'pull_request_name', 'author_id', 'status']


class ReviewerAssignmentStatSerializer(serializers.Serializer):
    user_id = serializers.CharField()
    assigned_count = serializers.IntegerField()


class StatsSerializer(serializers.Serializer):
    total_pull_requests = serializers.IntegerField()
    total_open_pull_requests = serializers.IntegerField()
    total_merged_pull_requests = serializers.IntegerField()
    assignments_by_reviewer = ReviewerAssignmentStatSerializer(many=True)


class BulkDeactivationSerializer(serializers.Serializer):
    team_name = serializers.CharField()
    deactivated_user_ids = serializers.ListField(child=serializers.CharField())
    reassigned_reviewers = serializers.IntegerField(source='reassigned_count')
    removed_reviewers = serializers.IntegerField(source='removed_count')


# Входные данные запросов

class TeamMemberInputSerializer(serializers.Serializer):
    user_id = serializers.CharField(max_length=50)
    username = serializers.CharField(max_length=100)
    is_active = serializers.BooleanField()


class TeamAddRequestSerializer(serializers.Serializer):
    team_name = serializers.CharField(max_length=100)
    members = TeamMemberInputSerializer(many=True, default=list)


class BulkDeactivateRequestSerializer(serializers.Serializer):
    team_name = serializers.CharField(max_length=100)
    user_ids = serializers.ListField(child=serializers.CharField(max_length=50), allow_empty=False)


class SetIsActiveRequestSerializer(serializers.Serializer):
    user_id = serializers.CharField(max_length=50)
    is_active = serializers.BooleanField()


class PullRequestCreateRequestSerializer(serializers.Serializer):
    pull_request_id = serializers.CharField(max_length=100)
    pull_request_name = serializers.CharField(max_length=200)
    author_id = serializers.CharField(max_length=50)


class PullRequestMergeRequestSerializer(serializers.Serializer):
    pull_request_id = serializers.CharField(max_length=100)


class PullRequestReassignRequestSerializer(serializers.Serializer):
    pull_request_id = serializers.CharField(max_length=100)
    old_user_id = serializers.CharField(max_length=50)
