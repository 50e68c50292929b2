# services/api/models/tables.py
"""
Single registry of every table: its header row, typed columns, and the
spreadsheet family (document) it lives in.

Families map to documents through settings: each family may have its own
spreadsheet id or fall back to the default one.
"""
from __future__ import annotations

from typing import Dict, Tuple

from core.schema import TableSchema

# ========== delegation family ==========

DELEGATION = TableSchema(
    name="delegation",
    headers=(
        "id", "user_id", "delegation_name", "description", "assigned_to",
        "doer_name", "department", "priority", "due_date", "status",
        "voice_note_url", "reference_docs", "evidence_required",
        "evidence_urls", "category", "is_important", "created_at", "updated_at",
    ),
    json_fields=frozenset({"reference_docs", "evidence_urls"}),
    bool_fields=frozenset({"evidence_required", "is_important"}),
    int_fields=frozenset({"id", "user_id"}),
    updated_field="updated_at",
)

DELEGATION_REMARKS = TableSchema(
    name="delegation_remarks",
    headers=("id", "delegation_id", "user_id", "username", "remark", "created_at"),
    int_fields=frozenset({"id", "delegation_id", "user_id"}),
)

DELEGATION_HISTORY = TableSchema(
    name="delegation_revision_history",
    headers=(
        "id", "delegation_id", "old_status", "new_status", "old_due_date",
        "new_due_date", "reason", "evidence_urls", "created_at",
    ),
    json_fields=frozenset({"evidence_urls"}),
    int_fields=frozenset({"id", "delegation_id"}),
)

# ========== users family ==========

USER_HEADERS: Tuple[str, ...] = (
    "id", "username", "email", "password", "phone", "role_name", "image_url",
    # personal
    "dob", "uan_number", "aadhaar_number", "pan_number",
    # address
    "present_address_line1", "present_address_line2", "present_city",
    "present_country", "present_state", "present_postal_code",
    "permanent_same_as_present",
    "permanent_address_line1", "permanent_address_line2", "permanent_city",
    "permanent_country", "permanent_state", "permanent_postal_code",
    # professional
    "experience", "source_of_hire", "skill_set", "highest_qualification",
    "additional_information", "location", "title", "current_salary",
    "department", "offer_letter_url", "tentative_joining_date",
    "education", "work_experience",
    "created_at", "updated_at",
)

USERS = TableSchema(
    name="users",
    headers=USER_HEADERS,
    json_fields=frozenset({"education", "work_experience"}),
    bool_fields=frozenset({"permanent_same_as_present"}),
    updated_field="updated_at",
)

DEPARTMENTS = TableSchema(
    name="departments",
    headers=("id", "name", "created_at"),
)

NOTIFICATIONS = TableSchema(
    name="notifications",
    headers=("id", "user_id", "title", "message", "type", "link", "is_read", "created_at"),
    bool_fields=frozenset({"is_read"}),
    int_fields=frozenset({"id", "user_id"}),
)

# ========== todos family ==========

TODOS = TableSchema(
    name="todos",
    headers=(
        "id", "title", "description", "priority", "status", "category",
        "is_important", "assigned_to", "user_id", "created_at", "updated_at",
    ),
    bool_fields=frozenset({"is_important"}),
    int_fields=frozenset({"id", "user_id"}),
    updated_field="updated_at",
)

# ========== checklists family ==========

CHECKLISTS = TableSchema(
    name="checklists",
    headers=(
        "id", "question", "assignee", "doer_name", "priority", "department",
        "verification_required", "verifier_name", "attachment_required",
        "frequency", "due_date", "status", "group_id", "created_by",
        "created_at", "updated_at",
    ),
    bool_fields=frozenset({"verification_required", "attachment_required"}),
    updated_field="updated_at",
)

CHECKLIST_REMARKS = TableSchema(
    name="checklist_remarks",
    headers=("id", "checklist_id", "user_id", "username", "remark", "created_at"),
    int_fields=frozenset({"id", "checklist_id", "user_id"}),
)

CHECKLIST_HISTORY = TableSchema(
    name="checklist_revision_history",
    headers=(
        "id", "checklist_id", "user_id", "username", "action", "old_status",
        "new_status", "remark", "attachment_url", "timestamp",
    ),
    int_fields=frozenset({"id", "checklist_id", "user_id"}),
    created_field="timestamp",
)

# ========== registry ==========

FAMILIES: Dict[str, Tuple[TableSchema, ...]] = {
    "delegation": (DELEGATION, DELEGATION_REMARKS, DELEGATION_HISTORY),
    "users": (USERS, DEPARTMENTS, NOTIFICATIONS),
    "todos": (TODOS,),
    "checklists": (CHECKLISTS, CHECKLIST_REMARKS, CHECKLIST_HISTORY),
}
