from __future__ import annotations

import json
from typing import Any, Dict, Iterable, Optional

from django.contrib.auth.models import User
from django.core.serializers.json import DjangoJSONEncoder
from django.forms.models import model_to_dict

from staffing.domain.models import AuditLog

DEFAULT_EXCLUDE = {"id"}

def snapshot_instance(
    instance, *,
    include: Optional[Iterable[str]] = None,
    exclude: Iterable[str] = DEFAULT_EXCLUDE
) -> Dict[str, Any]:
    """Captures the current field values of a model instance.

    Dates and times are stored as ISO strings so the snapshot fits a JSON column.

    Args:
        instance (Django Model): The instance to capture.
        include (Optional[Iterable[str]], optional): Fields to keep. Defaults to None.
        exclude (Iterable[str], optional): Fields to drop. Defaults to DEFAULT_EXCLUDE.

    Returns:
        Dict[str, Any]: JSON-safe field values.
    """
    if include:
        data = model_to_dict(instance, fields=list(include))
    else:
        data = model_to_dict(instance, exclude=list(exclude))
    return json.loads(json.dumps(data, cls=DjangoJSONEncoder))

def audit(
    action: str,
    instance, *,
    before: Optional[Dict[str, Any]] = None,
    after: Optional[Dict[str, Any]] = None,
    author: Optional[User] = None,
    table: Optional[str] = None,
    record_id: Optional[str] = None,
) -> AuditLog:
    """Writes one audit entry for an action on a model instance.

    Args:
        action (str): What happened ("create", "update", "delete", "add_days", ...).
        instance (Django Model): The affected instance.
        before (Optional[Dict[str, Any]], optional): State before the action. Defaults to None.
        after (Optional[Dict[str, Any]], optional): State after the action. Defaults to None.
        author (Optional[User], optional): Who acted; None for system actions. Defaults to None.
        table (Optional[str], optional): Table name; defaults to the model's db_table.
        record_id (Optional[str], optional): Record id; defaults to the instance id.

    Returns:
        AuditLog: The stored entry.
    """
    if not table:
        table = instance._meta.db_table
    if not record_id:
        record_id = str(getattr(instance, "id", "unknown"))

    return AuditLog.objects.create(
        action=action,
        table=table,
        record_id=record_id,
        before=before,
        after=after,
        author=author if author is not None and author.is_authenticated else None,
    )
