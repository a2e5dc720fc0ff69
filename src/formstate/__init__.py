"""
Form overlays for normalized entity stores.

This package lets any entity in a normalized store (a dict of Ident -> entity)
carry editable, validated form state without being copied out of the store.

Key Features:
- Declarative field and subform definitions
- Recursive, cycle-safe form initialization across a relational graph
- Tri-state validation with an open validator registry
- Dirty tracking and change deltas
- All-or-nothing commit and reset across a nested form tree

Quick Start:
    >>> from formstate import (
    ...     FormEntitySpec, Ident, identity_field, text_field,
    ...     init_form, update_field, commit_to_entity,
    ... )
    >>>
    >>> class PhoneForm(FormEntitySpec):
    ...     table = "phone/by-id"
    ...     @classmethod
    ...     def query(cls):
    ...         return ["db/id", "phone/number"]
    ...     @classmethod
    ...     def form_elements(cls):
    ...         return [identity_field("db/id"), text_field("phone/number")]
    >>>
    >>> phone = Ident("phone/by-id", 1)
    >>> store = {phone: {"db/id": 1, "phone/number": "555-1212"}}
    >>> store = init_form(store, PhoneForm, phone)
    >>> store = update_field(store, phone, "phone/number", "555-1313")
    >>> store = commit_to_entity(store, phone)
    >>> store[phone]["phone/number"]
    '555-1313'

Architecture:
    Schema -> build_form (overlay on one entity)
           -> forms_in (every overlay-bearing entity under a root)
           -> validation / dirty tracking (per form)
           -> commit / reset (whole tree)

    Every operation takes a store and returns a new one. The embedding
    application holds the only mutable reference and serializes calls.

Modules:
    - ident: Ident, TempId and store helpers
    - fields: field and subform declarations
    - entity_spec: capability contract for form entity types
    - overlay: form state, build_form, init_form, read accessors
    - resolver: subform discovery and tree traversal
    - validation: validator registry and validation
    - dirty: dirty tracking and deltas
    - transactions: commit and reset
    - mutations: named store transforms for the embedding framework
    - rendering: field renderer registry
    - config: framework configuration
"""

# Configuration
from formstate.config import (
    FormConfig,
    get_form_config,
    set_form_config,
    form_config_context,
)

# Errors
from formstate.errors import (
    FormError,
    FormConfigurationError,
    NotInitializedError,
    EntityNotFoundError,
    UnknownMutationError,
)

# Identity
from formstate.ident import (
    Ident,
    TempId,
    Store,
    Entity,
    tempid,
    is_tempid,
    is_ident,
)

# Schema
from formstate.entity_spec import (
    FormEntitySpec,
    Join,
    has_form_capabilities,
)
from formstate.fields import (
    NONE,
    FieldKind,
    FieldDef,
    SubformLink,
    Option,
    option,
    identity_field,
    text_field,
    integer_field,
    checkbox_field,
    dropdown_field,
    subform_field,
    switcher_field,
    coerce_integer_input,
)

# Overlay
from formstate.overlay import (
    Validity,
    FieldState,
    FormState,
    build_form,
    is_initialized,
    init_form,
    form_state,
    form_ident,
    form_spec,
    field_config,
    field_type,
    is_subform,
    current_value,
    current_validity,
    css_class,
    element_names,
    editable_fields,
    validator,
    validator_args,
)

# Resolution
from formstate.resolver import (
    FormNode,
    subform_paths,
    resolve_instances,
    forms_in,
    update_forms,
    reduce_forms,
)

# Validation
from formstate.validation import (
    ValidatorRegistry,
    register_validator,
    update_validation,
    validate_fields,
    validate_form,
    is_valid,
    is_invalid,
    all_valid,
    any_invalid,
)

# Dirty tracking
from formstate.dirty import is_dirty, any_dirty, modified_fields

# Commit / reset
from formstate.transactions import CommitResult, commit, commit_to_entity, reset_from_entity

# Mutations
from formstate.mutations import (
    MUTATIONS,
    dispatch,
    update_field,
    set_integer_field,
    toggle_field,
    select_option,
    validate_field,
)

# Rendering
from formstate.rendering import FieldRendererRegistry, render_field

__all__ = [
    # Configuration
    'FormConfig',
    'get_form_config',
    'set_form_config',
    'form_config_context',
    # Errors
    'FormError',
    'FormConfigurationError',
    'NotInitializedError',
    'EntityNotFoundError',
    'UnknownMutationError',
    # Identity
    'Ident',
    'TempId',
    'Store',
    'Entity',
    'tempid',
    'is_tempid',
    'is_ident',
    # Schema
    'FormEntitySpec',
    'Join',
    'has_form_capabilities',
    'NONE',
    'FieldKind',
    'FieldDef',
    'SubformLink',
    'Option',
    'option',
    'identity_field',
    'text_field',
    'integer_field',
    'checkbox_field',
    'dropdown_field',
    'subform_field',
    'switcher_field',
    'coerce_integer_input',
    # Overlay
    'Validity',
    'FieldState',
    'FormState',
    'build_form',
    'is_initialized',
    'init_form',
    'form_state',
    'form_ident',
    'form_spec',
    'field_config',
    'field_type',
    'is_subform',
    'current_value',
    'current_validity',
    'css_class',
    'element_names',
    'editable_fields',
    'validator',
    'validator_args',
    # Resolution
    'FormNode',
    'subform_paths',
    'resolve_instances',
    'forms_in',
    'update_forms',
    'reduce_forms',
    # Validation
    'ValidatorRegistry',
    'register_validator',
    'update_validation',
    'validate_fields',
    'validate_form',
    'is_valid',
    'is_invalid',
    'all_valid',
    'any_invalid',
    # Dirty tracking
    'is_dirty',
    'any_dirty',
    'modified_fields',
    # Commit / reset
    'CommitResult',
    'commit',
    'commit_to_entity',
    'reset_from_entity',
    # Mutations
    'MUTATIONS',
    'dispatch',
    'update_field',
    'set_integer_field',
    'toggle_field',
    'select_option',
    'validate_field',
    # Rendering
    'FieldRendererRegistry',
    'render_field',
]

__version__ = '1.0.0'
__description__ = 'Form overlays for normalized entity stores'
