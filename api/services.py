import functools
from dataclasses import dataclass, field

import structlog
from django.db import DatabaseError, IntegrityError, models, transaction
from django.db.models import Count

from .exceptions import InternalError, InvalidRequest, NoCandidate, NotAssigned, NotFound, PRExists, PRMerged, TeamExists
from .models import PullRequest, ReviewerAssignment, Team, User
from .selection import SelectionPolicy, get_default_policy

logger = structlog.get_logger(__name__)

REVIEWERS_PER_PULL_REQUEST = 2


def surface_internal_errors(func):
    """
    Ошибки БД, не отнесенные к доменным, отдаются наружу как InternalError.
    Транзакция к этому моменту уже откатана.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except DatabaseError as exc:
            logger.error('storage_failure', operation=func.__qualname__, error=str(exc))
            raise InternalError(f"{func.__qualname__}: {exc}") from exc
    return wrapper


@dataclass
class BulkDeactivationResult:
    team_name: str
    deactivated_user_ids: list = field(default_factory=list)
    reassigned_count: int = 0
    removed_count: int = 0


class TeamService:
    """
    Сервис для управления командами и пользователями
    """

    def __init__(self, selector: SelectionPolicy = None):
        self.selector = selector or get_default_policy()

    @surface_internal_errors
    @transaction.atomic
    def create_team_with_members(self, team_name: str, members_data: list) -> Team:
        """
        Создает команду с пользователями.
        Существующие пользователи переносятся в новую команду, их имя и активность перезаписываются.
        """
        if Team.objects.filter(name=team_name).exists():
            raise TeamExists()

        try:
            with transaction.atomic():
                team = Team.objects.create(name=team_name)
        except IntegrityError as exc:
            raise TeamExists() from exc

        for member_data in members_data:
            self._create_or_update_user(team, member_data)

        logger.info('team_created', team_name=team_name, members=len(members_data))
        return team

    @staticmethod
    def _create_or_update_user(team: Team, member_data: dict) -> User:
        user, _ = User.objects.update_or_create(
            id=member_data['user_id'],
            defaults={
                'username': member_data['username'],
                'is_active': member_data['is_active'],
                'team': team,
            },
        )
        return user

    @surface_internal_errors
    def get_team_with_members(self, team_name: str) -> Team:
        try:
            return Team.objects.prefetch_related('members').get(name=team_name)
        except Team.DoesNotExist:
            raise NotFound(f"Team '{team_name}' not found")

    @surface_internal_errors
    @transaction.atomic
    def bulk_deactivate_team_members(self, team_name: str, user_ids: list) -> BulkDeactivationResult:
        """
        Массовая деактивация пользователей команды с переназначением ревьюверов в открытых PR.

        Все или ничего: если хотя бы один id не найден в команде, никто не деактивируется.
        Кандидаты на замену берутся из снимка активных участников команды после деактивации.
        Если замены нет, назначение просто снимается.
        """
        if not user_ids:
            raise InvalidRequest('user_ids must not be empty')

        try:
            team = Team.objects.get(name=team_name)
        except Team.DoesNotExist:
            raise NotFound(f"Team '{team_name}' not found")

        requested_ids = list(dict.fromkeys(user_ids))
        found_ids = set(
            User.objects.select_for_update()
            .filter(team=team, id__in=requested_ids)
            .values_list('id', flat=True)
        )
        missing = [user_id for user_id in requested_ids if user_id not in found_ids]
        if missing:
            raise NotFound(f"Users {missing} not found in team '{team_name}'")

        User.objects.filter(id__in=requested_ids).update(is_active=False)

        active_ids = list(User.objects.active_in_team(team.pk).order_by('id').values_list('id', flat=True))

        result = BulkDeactivationResult(team_name=team_name, deactivated_user_ids=requested_ids)
        for user_id in requested_ids:
            for pr_id, author_id in ReviewerAssignment.objects.open_reviewed_by(user_id):
                assigned = set(
                    ReviewerAssignment.objects.filter(pull_request_id=pr_id).values_list('reviewer_id', flat=True)
                )
                assigned.discard(user_id)

                candidates = [
                    candidate_id for candidate_id in active_ids
                    if candidate_id != author_id and candidate_id not in assigned
                ]
                chosen = self.selector.pick(candidates, 1)

                if chosen:
                    ReviewerAssignment.objects.replace(pr_id, user_id, chosen[0])
                    result.reassigned_count += 1
                else:
                    ReviewerAssignment.objects.unassign(pr_id, user_id)
                    result.removed_count += 1

        logger.info(
            'team_members_deactivated',
            team_name=team_name,
            deactivated=requested_ids,
            reassigned=result.reassigned_count,
            removed=result.removed_count,
        )
        return result


class UserService:
    """
    Сервис для управления пользователями
    """

    @classmethod
    @surface_internal_errors
    @transaction.atomic
    def set_user_active_status(cls, user_id: str, is_active: bool) -> User:
        # Открытые PR не трогаем: каскад есть только у массовой деактивации
        updated = User.objects.filter(id=user_id).update(is_active=is_active)
        if not updated:
            raise NotFound(f"User '{user_id}' not found")

        logger.info('user_active_status_changed', user_id=user_id, is_active=is_active)
        return User.objects.select_related('team').get(id=user_id)

    @classmethod
    @surface_internal_errors
    def get_user_review_assignments(cls, user_id: str) -> list:
        if not User.objects.filter(id=user_id).exists():
            raise NotFound(f"User '{user_id}' not found")

        assigned_prs = (
            PullRequest.objects
            .filter(assignments__reviewer_id=user_id)
            .select_related('author')
            .order_by('created_at', 'id')
        )
        return list(assigned_prs)


class PullRequestService:
    """
    Сервис для управления Pull Request'ами
    """

    def __init__(self, selector: SelectionPolicy = None):
        self.selector = selector or get_default_policy()

    @surface_internal_errors
    @transaction.atomic
    def create_pull_request(self, pr_id: str, pr_name: str, author_id: str) -> PullRequest:
        # Проверяем, существует ли PR
        if PullRequest.objects.filter(id=pr_id).exists():
            raise PRExists()

        try:
            author = User.objects.get(id=author_id)
        except User.DoesNotExist:
            raise NotFound(f"Author '{author_id}' not found")

        reviewer_ids = self._pick_reviewers(author)

        pr = PullRequest.objects.open_for(pr_id, pr_name, author)
        for reviewer_id in reviewer_ids:
            ReviewerAssignment.objects.assign(pr.pk, reviewer_id)

        logger.info('pull_request_created', pr_id=pr_id, author_id=author_id, reviewers=reviewer_ids)
        return PullRequest.objects.get_with_reviewers(pr_id)

    def _pick_reviewers(self, author: User) -> list:
        # Активные пользователи команды автора, кроме самого автора
        candidates = (
            User.objects.active_in_team(author.team_id)
            .exclude(id=author.id)
            .order_by('id')
            .values_list('id', flat=True)
        )
        return self.selector.pick(list(candidates), REVIEWERS_PER_PULL_REQUEST)

    @surface_internal_errors
    @transaction.atomic
    def merge_pull_request(self, pr_id: str) -> PullRequest:
        try:
            pr = PullRequest.objects.select_for_update().get(id=pr_id)
        except PullRequest.DoesNotExist:
            raise NotFound(f"PR '{pr_id}' not found")

        if pr.mark_merged():
            logger.info('pull_request_merged', pr_id=pr_id)

        return PullRequest.objects.get_with_reviewers(pr_id)

    @surface_internal_errors
    @transaction.atomic
    def reassign_reviewer(self, pr_id: str, old_user_id: str) -> tuple:
        """
        Заменяет ревьювера на случайного активного участника его команды.
        Возвращает обновленный PR и id нового ревьювера.
        """
        try:
            pr = PullRequest.objects.select_for_update().get(id=pr_id)
        except PullRequest.DoesNotExist:
            raise NotFound(f"PR '{pr_id}' not found")

        if pr.is_merged:
            raise PRMerged()

        try:
            old_reviewer = User.objects.get(id=old_user_id)
        except User.DoesNotExist:
            raise NotFound(f"User '{old_user_id}' not found")

        assigned = pr.reviewer_ids()
        if old_reviewer.id not in assigned:
            raise NotAssigned()

        excluded = assigned | {pr.author_id, old_reviewer.id}
        candidates = (
            User.objects.active_in_team(old_reviewer.team_id)
            .exclude(id__in=list(excluded))
            .order_by('id')
            .values_list('id', flat=True)
        )
        chosen = self.selector.pick(list(candidates), 1)
        if not chosen:
            raise NoCandidate()

        new_reviewer_id = chosen[0]
        ReviewerAssignment.objects.replace(pr.pk, old_reviewer.id, new_reviewer_id)

        logger.info('reviewer_reassigned', pr_id=pr_id, old_reviewer=old_reviewer.id, new_reviewer=new_reviewer_id)
        return PullRequest.objects.get_with_reviewers(pr_id), new_reviewer_id


class StatsService:
    """
    Сервис для сбора статистики
    """

    @classmethod
    @surface_internal_errors
    def get_review_stats(cls) -> dict:
        """
        Returns:
            dict: Количество PR по статусам и число назначений на каждого ревьювера
        """
        totals = PullRequest.objects.aggregate(
            total=Count('id'),
            open=Count('id', filter=models.Q(status=PullRequest.Status.OPEN)),
            merged=Count('id', filter=models.Q(status=PullRequest.Status.MERGED)),
        )

        assignments_by_reviewer = (
            ReviewerAssignment.objects
            .values('reviewer_id')
            .annotate(assigned_count=Count('id'))
            .order_by('-assigned_count', 'reviewer_id')
        )

        return {
            'total_pull_requests': totals['total'],
            'total_open_pull_requests': totals['open'],
            'total_merged_pull_requests': totals['merged'],
            'assignments_by_reviewer': [
                {'user_id': row['reviewer_id'], 'assigned_count': row['assigned_count']}
                for row in assignments_by_reviewer
            ],
        }
