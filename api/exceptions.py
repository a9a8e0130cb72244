from django.core.exceptions import ObjectDoesNotExist, ValidationError


class NotFound(ObjectDoesNotExist):
    """Команда, пользователь или PR не найдены"""
    code = 'NOT_FOUND'


class AssignmentConflict(ValidationError):
    """
    Базовый класс доменных конфликтов. Код ошибки отдается клиенту как есть.
    """
    default_message = 'conflict'
    default_code = 'CONFLICT'

    def __init__(self, message=None):
        super().__init__(message or self.default_message, code=self.default_code)


class TeamExists(AssignmentConflict):
    default_message = 'team_name already exists'
    default_code = 'TEAM_EXISTS'


class PRExists(AssignmentConflict):
    default_message = 'PR id already exists'
    default_code = 'PR_EXISTS'


class PRMerged(AssignmentConflict):
    default_message = 'cannot reassign on merged PR'
    default_code = 'PR_MERGED'


class NotAssigned(AssignmentConflict):
    default_message = 'reviewer is not assigned to this PR'
    default_code = 'NOT_ASSIGNED'


class NoCandidate(AssignmentConflict):
    default_message = 'no active replacement candidate in team'
    default_code = 'NO_CANDIDATE'


class InvalidRequest(ValidationError):
    """Некорректные аргументы операции, до обращения к хранилищу"""
    code = 'VALIDATION_ERROR'

    def __init__(self, message):
        super().__init__(message, code=self.code)


class InternalError(Exception):
    """Ошибка хранилища или транзакции, не попавшая ни в одну доменную категорию"""
    code = 'SERVER_ERROR'
