from .descriptor import AssociationDescriptor, AssociationKind
from .scope_builder import (AssociationScopeBuilder, BelongsToScopeBuilder, HasAndBelongsToManyScopeBuilder,
                            HasManyScopeBuilder, build_association_scope, resolve_association)


__all__ = [
    "AssociationDescriptor",
    "AssociationKind",
    "AssociationScopeBuilder",
    "BelongsToScopeBuilder",
    "HasAndBelongsToManyScopeBuilder",
    "HasManyScopeBuilder",
    "build_association_scope",
    "resolve_association",
]
