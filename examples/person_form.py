"""
Person/phone form walkthrough.

Builds a person form with a to-many phone subform over a normalized store,
validates it, fixes the invalid fields, and commits the whole tree.

Run from the repository root after `pip install -e .`:
    python examples/person_form.py
"""

import logging
import re

from formstate import (
    FormEntitySpec,
    Ident,
    Join,
    checkbox_field,
    commit,
    current_validity,
    dropdown_field,
    identity_field,
    init_form,
    integer_field,
    is_dirty,
    modified_fields,
    option,
    register_validator,
    subform_field,
    text_field,
    update_field,
    validate_form,
)

logger = logging.getLogger(__name__)

US_PHONE = re.compile(r"[(][0-9]{3}[)] [0-9]{3}-[0-9]{4}")


@register_validator("us_phone")
def us_phone(value, args):
    return US_PHONE.fullmatch(str(value)) is not None


@register_validator("full_name")
def full_name(value, args):
    return len(str(value).split()) >= 2


class PhoneForm(FormEntitySpec):
    table = "phone/by-id"

    @classmethod
    def query(cls):
        return ["db/id", "phone/type", "phone/number"]

    @classmethod
    def form_elements(cls):
        return [
            identity_field("db/id"),
            text_field("phone/number", validator="us_phone"),
            dropdown_field("phone/type", [option("home", "Home"), option("work", "Work")]),
        ]


class PersonForm(FormEntitySpec):
    table = "people/by-id"

    @classmethod
    def query(cls):
        return ["db/id", "person/name", "person/age", "person/registered-to-vote?",
                Join("person/phone-numbers", PhoneForm)]

    @classmethod
    def form_elements(cls):
        return [
            identity_field("db/id"),
            subform_field("person/phone-numbers", PhoneForm, "many"),
            text_field("person/name", validator="full_name"),
            integer_field("person/age", validator="in_range", validator_args={"min": 1, "max": 110}),
            checkbox_field("person/registered-to-vote?"),
        ]


def main():
    person = Ident("people/by-id", 1)
    phone = Ident("phone/by-id", 22)
    store = {
        person: {"db/id": 1, "person/name": "Tony", "person/age": 23, "person/phone-numbers": [phone]},
        phone: {"db/id": 22, "phone/number": "5551212", "phone/type": "home"},
    }

    store = init_form(store, PersonForm, person)
    store = validate_form(store, person)
    logger.info(f"name: {current_validity(store[person], 'person/name').value}, "
                f"phone: {current_validity(store[phone], 'phone/number').value}")

    result = commit(store, person)
    logger.info(f"first commit accepted: {result.committed}")

    store = update_field(result.store, person, "person/name", "Tony Kay")
    store = update_field(store, phone, "phone/number", "(555) 121-2121")
    logger.info(f"pending changes: {modified_fields(store, person)}")

    result = commit(store, person, remote=True)
    logger.info(f"second commit accepted: {result.committed}, payload: {result.to_dict()}")
    logger.info(f"dirty after commit: {is_dirty(result.store[person])}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    main()
