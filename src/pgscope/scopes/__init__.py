from .array import any_column_contains_all, contains_all, contains_any
from .or_merge import merge_with_or, merged_condition
from .set_membership import member_of_set, values_list


__all__ = [
    "contains_all",
    "contains_any",
    "any_column_contains_all",
    "member_of_set",
    "values_list",
    "merge_with_or",
    "merged_condition",
]
