"""Data Transfer Objects for the component tree.

A product's bill of materials is at most two levels deep, so the tree is a
fixed-shape structure rather than a recursive one: a ComponentTreeNode holds
a flat list of ComponentLeaf entries, and a leaf has no children at all.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from src.models import Product, ProductComponent


@dataclass
class ComponentLeaf:
    """Level-2 entry: a component of a component.

    Attributes:
        component: The sub-component product
        relationship: Edge from the level-1 component to this product
    """

    component: Product
    relationship: ProductComponent

    def to_dict(self) -> Dict[str, Any]:
        return {
            "component": self.component.to_dict(),
            "relationship": self.relationship.to_dict(),
        }


@dataclass
class ComponentTreeNode:
    """Level-1 entry: a direct component and its own direct components.

    Attributes:
        component: The direct component product
        relationship: Edge from the root product to this component
        sub_components: Level-2 entries, empty when not materialized
    """

    component: Product
    relationship: ProductComponent
    sub_components: List[ComponentLeaf] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "component": self.component.to_dict(),
            "relationship": self.relationship.to_dict(),
            "sub_components": [leaf.to_dict() for leaf in self.sub_components],
        }
