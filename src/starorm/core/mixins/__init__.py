"""
Core mixins for model functionality.

Model is assembled from these mixins so query building and many-to-many
handling stay out of the row lifecycle code.
"""

from .query_mixin import QueryMixin
from .relation_mixin import RelationMixin, far_key_values

__all__ = ["QueryMixin", "RelationMixin", "far_key_values"]
