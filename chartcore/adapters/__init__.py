from .normalize import coerce_items, coerce_vector, is_array_like

__all__ = ["coerce_items", "coerce_vector", "is_array_like"]
