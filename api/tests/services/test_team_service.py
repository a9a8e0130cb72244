import random
from unittest.mock import patch

from django.core.exceptions import ObjectDoesNotExist, ValidationError
from django.db import DatabaseError
from django.test import TestCase

from api.exceptions import InternalError
from api.models import Team, User, PullRequest, ReviewerAssignment
from api.selection import LowestFirstSelectionPolicy, RandomSelectionPolicy
from api.services import PullRequestService, TeamService


class TeamServiceTest(TestCase):
    def setUp(self):
        self.team_name = "backend"
        self.members_data = [
            {"user_id": "u1", "username": "Alice", "is_active": True},
            {"user_id": "u2", "username": "Bob", "is_active": True},
            {"user_id": "u3", "username": "Charlie", "is_active": False},
        ]
        self.service = TeamService(selector=LowestFirstSelectionPolicy())

    def test_create_team_with_members_success(self):
        """Тест успешного создания команды с пользователями"""
        team = self.service.create_team_with_members(self.team_name, self.members_data)

        self.assertEqual(team.name, self.team_name)
        self.assertEqual(team.members.count(), 3)

        user1 = User.objects.get(id="u1")
        self.assertEqual(user1.username, "Alice")
        self.assertTrue(user1.is_active)
        self.assertEqual(user1.team, team)
        self.assertFalse(User.objects.get(id="u3").is_active)

    def test_create_team_duplicate(self):
        """Тест создания дубликата команды"""
        self.service.create_team_with_members(self.team_name, self.members_data)

        with self.assertRaises(ValidationError) as context:
            self.service.create_team_with_members(self.team_name, [])

        self.assertEqual(context.exception.code, 'TEAM_EXISTS')
        self.assertEqual(str(context.exception), "['team_name already exists']")

    def test_create_team_duplicate_with_members_changes_nothing(self):
        """Повторное создание с участниками тоже ошибка, пользователи не меняются"""
        self.service.create_team_with_members(self.team_name, self.members_data)

        with self.assertRaises(ValidationError):
            self.service.create_team_with_members(
                self.team_name, [{"user_id": "u1", "username": "Renamed", "is_active": False}]
            )

        user1 = User.objects.get(id="u1")
        self.assertEqual(user1.username, "Alice")
        self.assertTrue(user1.is_active)

    def test_create_team_empty_members(self):
        """Тест создания команды без пользователей"""
        team = self.service.create_team_with_members("empty_team", [])

        self.assertEqual(team.name, "empty_team")
        self.assertEqual(team.members.count(), 0)

    def test_get_team_with_members_success(self):
        """Тест успешного получения команды с пользователями"""
        self.service.create_team_with_members(self.team_name, self.members_data)

        team = self.service.get_team_with_members(self.team_name)

        self.assertEqual(team.name, self.team_name)
        self.assertEqual([member.id for member in team.members.all()], ["u1", "u2", "u3"])

    def test_get_team_with_members_not_found(self):
        """Тест получения несуществующей команды"""
        with self.assertRaises(ObjectDoesNotExist):
            self.service.get_team_with_members("nonexistent")

    def test_get_team_with_members_storage_failure(self):
        """Ошибка БД при чтении отдается как InternalError"""
        with patch.object(Team.objects, 'prefetch_related', side_effect=DatabaseError('disk I/O error')):
            with self.assertRaises(InternalError):
                self.service.get_team_with_members(self.team_name)

    def test_create_or_update_user_existing_user_moves_team(self):
        """Существующий пользователь переезжает в новую команду, его назначения остаются"""
        old_team = self.service.create_team_with_members("old", [
            {"user_id": "author", "username": "Author", "is_active": True},
            {"user_id": "mover", "username": "Mover", "is_active": True},
        ])
        pr = PullRequestService(selector=LowestFirstSelectionPolicy()).create_pull_request(
            "pr-1", "Old team PR", "author"
        )
        self.assertEqual(pr.reviewer_ids(), {"mover"})

        new_team = self.service.create_team_with_members("new", [
            {"user_id": "mover", "username": "Mover Renamed", "is_active": False},
        ])

        mover = User.objects.get(id="mover")
        self.assertEqual(mover.team, new_team)
        self.assertEqual(mover.username, "Mover Renamed")
        self.assertFalse(mover.is_active)
        self.assertEqual(old_team.members.count(), 1)
        self.assertEqual(pr.reviewer_ids(), {"mover"})


class BulkDeactivateTest(TestCase):
    def setUp(self):
        self.team_service = TeamService(selector=LowestFirstSelectionPolicy())
        self.pr_service = PullRequestService(selector=LowestFirstSelectionPolicy())

    def _create_team(self, name, user_ids, active=True):
        return self.team_service.create_team_with_members(
            name,
            [{"user_id": user_id, "username": user_id.upper(), "is_active": active} for user_id in user_ids],
        )

    def test_all_assignments_removed_when_no_candidates(self):
        """Удаляем все назначения, если в команде не осталось кандидатов"""
        self._create_team("T2", ["bu1", "bu2", "bu3"])
        for i in range(5):
            pr = self.pr_service.create_pull_request(f"pr-{i}", f"PR {i}", "bu1")
            self.assertEqual(pr.reviewer_ids(), {"bu2", "bu3"})

        result = self.team_service.bulk_deactivate_team_members("T2", ["bu2", "bu3"])

        self.assertEqual(result.team_name, "T2")
        self.assertEqual(result.deactivated_user_ids, ["bu2", "bu3"])
        self.assertEqual(result.reassigned_count, 0)
        self.assertEqual(result.removed_count, 10)
        self.assertEqual(ReviewerAssignment.objects.count(), 0)
        self.assertFalse(User.objects.get(id="bu2").is_active)
        self.assertFalse(User.objects.get(id="bu3").is_active)

    def test_reassigns_to_remaining_active_member(self):
        self._create_team("backend", ["a", "b", "c", "d"])
        pr = self.pr_service.create_pull_request("pr-1", "PR", "a")
        self.assertEqual(pr.reviewer_ids(), {"b", "c"})

        result = self.team_service.bulk_deactivate_team_members("backend", ["b"])

        self.assertEqual(result.reassigned_count, 1)
        self.assertEqual(result.removed_count, 0)
        self.assertEqual(pr.reviewer_ids(), {"c", "d"})

    def test_does_not_pick_author_or_already_assigned(self):
        """Кандидат не автор и не второй ревьювер того же PR"""
        self._create_team("backend", ["a", "b", "c"])
        pr = self.pr_service.create_pull_request("pr-1", "PR", "a")

        result = self.team_service.bulk_deactivate_team_members("backend", ["b"])

        self.assertEqual(result.removed_count, 1)
        self.assertEqual(pr.reviewer_ids(), {"c"})

    def test_merged_pull_requests_are_frozen(self):
        self._create_team("backend", ["a", "b", "c", "d"])
        self.pr_service.create_pull_request("pr-1", "PR", "a")
        merged = self.pr_service.merge_pull_request("pr-1")

        result = self.team_service.bulk_deactivate_team_members("backend", ["b", "c"])

        self.assertEqual(result.reassigned_count + result.removed_count, 0)
        self.assertEqual(merged.reviewer_ids(), {"b", "c"})

    def test_unknown_user_aborts_whole_batch(self):
        """Неизвестный id отменяет всю операцию"""
        self._create_team("backend", ["a", "b", "c"])
        self.pr_service.create_pull_request("pr-1", "PR", "a")

        with self.assertRaises(ObjectDoesNotExist):
            self.team_service.bulk_deactivate_team_members("backend", ["b", "ghost"])

        self.assertTrue(User.objects.get(id="b").is_active)
        self.assertEqual(PullRequest.objects.get(id="pr-1").reviewer_ids(), {"b", "c"})

    def test_user_from_other_team_aborts_batch(self):
        self._create_team("backend", ["a", "b"])
        self._create_team("frontend", ["f1"])

        with self.assertRaises(ObjectDoesNotExist):
            self.team_service.bulk_deactivate_team_members("backend", ["b", "f1"])

        self.assertTrue(User.objects.get(id="b").is_active)
        self.assertTrue(User.objects.get(id="f1").is_active)

    def test_team_not_found(self):
        with self.assertRaises(ObjectDoesNotExist):
            self.team_service.bulk_deactivate_team_members("nonexistent", ["u1"])

    def test_empty_user_ids_rejected(self):
        self._create_team("backend", ["a"])

        with self.assertRaises(ValidationError) as context:
            self.team_service.bulk_deactivate_team_members("backend", [])

        self.assertEqual(context.exception.code, 'VALIDATION_ERROR')
        self.assertTrue(User.objects.get(id="a").is_active)

    def test_duplicate_ids_are_deactivated_once(self):
        self._create_team("backend", ["a", "b", "c", "d"])
        self.pr_service.create_pull_request("pr-1", "PR", "a")

        result = self.team_service.bulk_deactivate_team_members("backend", ["b", "b"])

        self.assertEqual(result.deactivated_user_ids, ["b"])
        self.assertEqual(result.reassigned_count, 1)

    def test_counts_match_affected_pairs_and_no_deactivated_reviewer_left(self):
        """reassigned + removed равно числу пар (деактивированный, открытый PR)"""
        user_ids = [f"u{i}" for i in range(8)]
        self._create_team("big", user_ids)
        pr_service = PullRequestService(selector=RandomSelectionPolicy(random.Random(11)))
        for i in range(30):
            pr_service.create_pull_request(f"pr-{i:02d}", f"PR {i}", user_ids[i % len(user_ids)])
        for i in range(0, 30, 4):
            pr_service.merge_pull_request(f"pr-{i:02d}")

        deactivated = ["u1", "u2", "u5"]
        affected = ReviewerAssignment.objects.filter(
            reviewer_id__in=deactivated, pull_request__status=PullRequest.Status.OPEN
        ).count()

        service = TeamService(selector=RandomSelectionPolicy(random.Random(5)))
        result = service.bulk_deactivate_team_members("big", deactivated)

        self.assertEqual(result.reassigned_count + result.removed_count, affected)
        self.assertFalse(
            ReviewerAssignment.objects.filter(
                reviewer_id__in=deactivated, pull_request__status=PullRequest.Status.OPEN
            ).exists()
        )
        for pr in PullRequest.objects.open():
            reviewers = pr.reviewer_ids()
            self.assertLessEqual(len(reviewers), 2)
            self.assertNotIn(pr.author_id, reviewers)
