from .team_views import team_add, team_get, team_deactivate_users
from .user_views import user_set_active, users_get_review
from .pull_request_views import pullrequest_create, pullrequest_merge, pullrequest_reassign
from .statistic_view import stats_overview
from .health_views import health_check

__all__ = [
    'team_add', 'team_get', 'team_deactivate_users',
    'user_set_active', 'users_get_review',
    'pullrequest_create', 'pullrequest_merge', 'pullrequest_reassign',
    'stats_overview',
    'health_check'
]
