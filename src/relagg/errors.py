class InputTypeError(TypeError):
    """
    Error raised when data or weight is not a three-dimensional DataArray.
    """


class MappingResolutionError(ValueError):
    """
    Error raised when a mapping cannot be read or reconciled with the data.
    """


class ShapeMismatchError(ValueError):
    """
    Error raised when a relation matrix fits neither orientation of an axis.
    """


class LabelingError(ValueError):
    """
    Error raised when no labels can be derived for an aggregated axis.
    """


class WeightValidationError(ValueError):
    """
    Error raised when weights are invalid or do not align with the data.
    """


class PartialRelationError(ValueError):
    """
    Error raised when a partial relation shares no labels with the data.
    """


class MissingDimension(ValueError):
    """
    Error raised when an axis or sub-dimension is expected but missing.
    """
