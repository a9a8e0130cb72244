from django.db import IntegrityError, models, transaction
from django.utils import timezone

from .exceptions import NotFound, PRExists


class Team(models.Model):
    name = models.CharField(max_length=100, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'teams'


class UserQuerySet(models.QuerySet):
    def active_in_team(self, team_id):
        return self.filter(team_id=team_id, is_active=True)


class User(models.Model):
    id = models.CharField(max_length=50, primary_key=True)
    username = models.CharField(max_length=100)
    team = models.ForeignKey(Team, on_delete=models.PROTECT, related_name='members')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = UserQuerySet.as_manager()

    def __str__(self):
        return f"{self.username} ({self.id})"

    class Meta:
        db_table = 'users'
        ordering = ['id']


class PullRequestQuerySet(models.QuerySet):
    def open(self):
        return self.filter(status=PullRequest.Status.OPEN)

    def with_reviewers(self):
        return self.select_related('author').prefetch_related('reviewers')


class PullRequestManager(models.Manager.from_queryset(PullRequestQuerySet)):
    def open_for(self, pr_id: str, name: str, author) -> 'PullRequest':
        """
        Создает PR в статусе OPEN. Если параллельная транзакция успела вставить
        тот же id, срабатывает уникальный ключ и наружу уходит PRExists.
        """
        try:
            with transaction.atomic():
                return self.create(id=pr_id, name=name, author=author)
        except IntegrityError as exc:
            raise PRExists() from exc

    def get_with_reviewers(self, pr_id: str) -> 'PullRequest':
        try:
            return self.with_reviewers().get(id=pr_id)
        except self.model.DoesNotExist:
            raise NotFound(f"PR '{pr_id}' not found")


class PullRequest(models.Model):
    class Status(models.TextChoices):
        OPEN = 'OPEN', 'Open'
        MERGED = 'MERGED', 'Merged'

    id = models.CharField(max_length=100, primary_key=True)
    name = models.CharField(max_length=200)
    author = models.ForeignKey(User, on_delete=models.PROTECT, related_name='authored_prs')
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.OPEN)
    reviewers = models.ManyToManyField(
        User,
        through='ReviewerAssignment',
        related_name='assigned_prs',
        blank=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    merged_at = models.DateTimeField(null=True, blank=True)

    objects = PullRequestManager()

    def clean(self):
        if self.status == self.Status.MERGED and not self.merged_at:
            self.merged_at = timezone.now()

    def save(self, *args, **kwargs):
        self.clean()
        super().save(*args, **kwargs)

    @property
    def is_merged(self) -> bool:
        return self.status == self.Status.MERGED

    def mark_merged(self) -> bool:
        """
        Переводит PR в MERGED. Повторный вызов ничего не меняет,
        merged_at проставляется только при первом переходе.
        """
        if self.is_merged:
            return False
        self.status = self.Status.MERGED
        self.merged_at = timezone.now()
        self.save(update_fields=['status', 'merged_at'])
        return True

    def reviewer_ids(self) -> set:
        return set(self.assignments.values_list('reviewer_id', flat=True))

    def __str__(self):
        return f"{self.name} ({self.id})"

    class Meta:
        db_table = 'pull_requests'


class ReviewerAssignmentQuerySet(models.QuerySet):
    # Низкоуровневые правки связи PR <-> ревьювер.
    # Инварианты проверяет вызывающий код (сервисы).

    def assign(self, pull_request_id: str, reviewer_id: str) -> 'ReviewerAssignment':
        return self.create(pull_request_id=pull_request_id, reviewer_id=reviewer_id)

    def unassign(self, pull_request_id: str, reviewer_id: str) -> int:
        deleted, _ = self.filter(pull_request_id=pull_request_id, reviewer_id=reviewer_id).delete()
        return deleted

    def replace(self, pull_request_id: str, old_reviewer_id: str, new_reviewer_id: str) -> int:
        return self.filter(
            pull_request_id=pull_request_id,
            reviewer_id=old_reviewer_id,
        ).update(reviewer_id=new_reviewer_id)

    def open_reviewed_by(self, reviewer_id: str) -> list:
        """
        Открытые PR, где пользователь назначен ревьювером: список пар (pr_id, author_id).
        На PostgreSQL/MySQL строки блокируются до конца транзакции; SQLite
        блокирует всю базу на запись с начала транзакции (режим IMMEDIATE).
        """
        return list(
            self.select_for_update()
            .filter(reviewer_id=reviewer_id, pull_request__status=PullRequest.Status.OPEN)
            .order_by('pull_request_id')
            .values_list('pull_request_id', 'pull_request__author')
        )


class ReviewerAssignment(models.Model):
    pull_request = models.ForeignKey(PullRequest, on_delete=models.CASCADE, related_name='assignments')
    reviewer = models.ForeignKey(User, on_delete=models.PROTECT, related_name='review_assignments')

    objects = ReviewerAssignmentQuerySet.as_manager()

    def __str__(self):
        return f"{self.reviewer_id} -> {self.pull_request_id}"

    class Meta:
        db_table = 'pr_reviewers'
        constraints = [
            models.UniqueConstraint(fields=['pull_request', 'reviewer'], name='unique_pr_reviewer'),
        ]
