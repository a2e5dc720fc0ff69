"""Pytest configuration and shared fixtures."""
import re

import pytest

from formstate import (
    FormEntitySpec,
    Ident,
    Join,
    ValidatorRegistry,
    FieldRendererRegistry,
    checkbox_field,
    dropdown_field,
    identity_field,
    integer_field,
    option,
    subform_field,
    text_field,
)
import formstate.config as config_module

US_PHONE = re.compile(r"[(][0-9]{3}[)] [0-9]{3}-[0-9]{4}")


class PhoneForm(FormEntitySpec):
    """Phone number subform."""
    table = "phone/by-id"

    @classmethod
    def query(cls):
        return ["db/id", "phone/type", "phone/number"]

    @classmethod
    def form_elements(cls):
        return [
            identity_field("db/id"),
            text_field("phone/number", validator="us_phone", validate_on_blur=True),
            dropdown_field("phone/type", [option("home", "Home"), option("work", "Work")]),
        ]


class PersonForm(FormEntitySpec):
    """Person form with a to-many phone subform."""
    table = "people/by-id"

    @classmethod
    def query(cls):
        return [
            "db/id",
            "person/name",
            "person/age",
            "person/registered-to-vote?",
            Join("person/phone-numbers", PhoneForm),
        ]

    @classmethod
    def form_elements(cls):
        return [
            identity_field("db/id"),
            subform_field("person/phone-numbers", PhoneForm, "many"),
            text_field("person/name", validator="name_valid", validate_on_blur=True),
            integer_field("person/age", validator="in_range",
                          validator_args={"min": 1, "max": 110}, validate_on_blur=True),
            checkbox_field("person/registered-to-vote?"),
        ]


PERSON = Ident("people/by-id", 1)
PHONE = Ident("phone/by-id", 22)


@pytest.fixture(autouse=True)
def isolate_registries():
    """Snapshot registries and config, register the test validators, restore after."""
    original_validators = ValidatorRegistry.snapshot()
    original_renderers = FieldRendererRegistry.snapshot()
    original_config = config_module._default_config

    ValidatorRegistry.register("name_valid", lambda value, args: " " in str(value).strip())
    ValidatorRegistry.register("us_phone", lambda value, args: US_PHONE.fullmatch(str(value)) is not None)

    yield

    ValidatorRegistry.restore(original_validators)
    FieldRendererRegistry.restore(original_renderers)
    config_module._default_config = original_config


@pytest.fixture
def person_store():
    """Raw (uninitialized) store with one person and one phone."""
    return {
        PERSON: {
            "db/id": 1,
            "person/name": "Tony",
            "person/age": 23,
            "person/phone-numbers": [PHONE],
        },
        PHONE: {"db/id": 22, "phone/number": "5551212", "phone/type": "home"},
    }


@pytest.fixture
def person_form_store(person_store):
    """The person store with form state initialized on every node."""
    from formstate import init_form
    return init_form(person_store, PersonForm, PERSON)
