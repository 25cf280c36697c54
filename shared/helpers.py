# shared/helpers.py
"""
Safe import helpers to avoid circular imports between grouping and curriculum.
"""


def get_group_reference_cleanup():
    """Safely get the function that drops class/module links to deleted groups."""
    from curriculum.services import release_group_names
    return release_group_names
