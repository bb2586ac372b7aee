class ServiceManagedAdmin:
    """
    Admin mixin for records whose state only the trade services may change.
    Staff can browse them; adding, editing and deleting is disabled.
    """

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
