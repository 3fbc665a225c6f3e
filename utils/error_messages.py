"""
Error Message Utilities

Provides human-readable error messages for database constraint violations
raised while writing journal, wishlist and place records.
"""

import re
from typing import Optional

# Human-readable constraint explanations
CONSTRAINT_MESSAGES = {
    "castles_rating_check": "Castle ratings must be between 1 and 5.",
    "lochs_rating_check": "Loch ratings must be between 1 and 5.",
    "hidden_gems_rating_check": "Hidden gem ratings must be between 1 and 5.",
    "hidden_gem_visits_rating_check": "Visit ratings must be between 1 and 5.",
}

UNIQUE_MESSAGES = {
    "journal_likes_journal_entry_id_user_id_key": "This user has already liked the entry.",
    "milestone_categories_name_key": "A milestone category with this name already exists.",
    "user_milestone_progress_milestone_id_user_id_key": "Progress for this milestone and user already exists.",
    "adventure_stats_stat_type_key": "An adventure stat with this type already exists.",
    "app_settings_setting_key_key": "A setting with this key already exists.",
}


def enhance_error_message(error: Exception) -> str:
    """
    Enhance database error messages with human-readable explanations.

    Handles:
    - Check constraint violations (adds explanation of the constraint)
    - Foreign key violations (explains the relationship)
    - Unique violations
    - Not-null violations
    - Unknown tables, columns and functions

    Returns the enhanced error message string.
    """
    error_str = str(error)

    constraint_match = re.search(r'violates check constraint "(\w+)"', error_str)
    if constraint_match:
        constraint_name = constraint_match.group(1)
        explanation = CONSTRAINT_MESSAGES.get(constraint_name)

        if explanation:
            return f"Constraint violation ({constraint_name}): {explanation}"
        return f"Constraint violation: {constraint_name}. {error_str}"

    fk_match = re.search(r'violates foreign key constraint "(\w+)"', error_str)
    if fk_match:
        constraint_name = fk_match.group(1)
        return (
            f"Foreign key violation ({constraint_name}): "
            f"The referenced record does not exist. {error_str}"
        )

    unique_match = re.search(r'duplicate key value violates unique constraint "(\w+)"', error_str)
    if unique_match:
        constraint_name = unique_match.group(1)
        explanation = UNIQUE_MESSAGES.get(constraint_name)
        if explanation:
            return f"Duplicate entry ({constraint_name}): {explanation}"
        return f"Duplicate entry: A record with this value already exists ({constraint_name})."

    null_match = re.search(r'null value in column "(\w+)".* violates not-null constraint', error_str)
    if null_match:
        column_name = null_match.group(1)
        return f"Required field missing: '{column_name}' cannot be null."

    # Column errors also name their relation, so match them first
    column_match = re.search(r'column "(\w+)" (?:of relation "\w+" )?does not exist', error_str)
    if column_match:
        return f"Unknown column '{column_match.group(1)}'."

    relation_match = re.search(r'relation "(\w+)" does not exist', error_str)
    if relation_match:
        return f"Unknown table or view '{relation_match.group(1)}'."

    function_match = re.search(r'function ([\w.]+)\(.*\) does not exist', error_str)
    if function_match:
        return f"Unknown function '{function_match.group(1)}' (or wrong argument types)."

    return error_str


def get_constraint_explanation(constraint_name: str) -> Optional[str]:
    """Get the explanation for a known check or unique constraint."""
    return CONSTRAINT_MESSAGES.get(constraint_name) or UNIQUE_MESSAGES.get(constraint_name)
