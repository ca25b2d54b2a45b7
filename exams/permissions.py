from rest_framework import permissions

GRADERS_GROUP = 'graders'


class IsGraderOrAdmin(permissions.BasePermission):
    message = "Only graders and admins can perform this action."

    def has_permission(self, request, view):
        return _is_grader(request.user)


def _is_grader(user):
    if not user or not user.is_authenticated:
        return False
    return user.is_staff or user.groups.filter(name=GRADERS_GROUP).exists()
