from django.core.serializers.json import DjangoJSONEncoder
import json

from ..models import AuditLog


def log_action(
    *,
    action: str,
    instance,
    owner=None,
    changes: dict | None = None,
):
    """
    Central audit logger.
    Runs inside the caller's transaction, so the row disappears
    together with the change it describes on rollback.
    """

    if owner is None:
        owner = getattr(instance, "owner", None)

    # Decimals and dates must survive the JSON column
    if changes is not None:
        changes = json.loads(json.dumps(changes, cls=DjangoJSONEncoder))

    return AuditLog.objects.create(
        owner=owner,
        action=action,
        object_type=instance.__class__.__name__,
        object_id=str(instance.pk),
        changes=changes,
    )
