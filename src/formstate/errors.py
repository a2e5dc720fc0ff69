"""
Exception hierarchy for form overlay operations.

Only fatal conditions raise. Schema problems that can be worked around
(broken subform targets, union or recursive joins, unregistered validators)
are logged as warnings by the module that detects them and never raise.
"""


class FormError(Exception):
    """Base class for all form overlay errors."""


class FormConfigurationError(FormError, ValueError):
    """A field or form declaration is unusable as written.

    Raised at construction time (e.g. a dropdown default that is not one of
    its options) or when an operation names a field the form does not declare.
    """


class NotInitializedError(FormError, LookupError):
    """An operation needs form state on an entity that has none.

    Call build_form() or init_form() on the entity first.
    """

    def __init__(self, ident=None, message: str = None):
        self.ident = ident
        if message is None:
            where = f" at {ident!r}" if ident is not None else ""
            message = f"Entity{where} has no form state. Did you remember to use build_form/init_form?"
        super().__init__(message)


class EntityNotFoundError(FormError, KeyError):
    """An operation addressed an ident that is not present in the store."""

    def __init__(self, ident):
        self.ident = ident
        super().__init__(f"No entity in store for {ident!r}")

    def __str__(self) -> str:
        return self.args[0]


class UnknownMutationError(FormError, KeyError):
    """dispatch() was asked for a mutation name that is not registered."""

    def __str__(self) -> str:
        return self.args[0]
