"""Tests for subform discovery and form-tree resolution."""
import logging

import pytest

from formstate import (
    EntityNotFoundError,
    FormEntitySpec,
    Ident,
    Join,
    NotInitializedError,
    build_form,
    commit_to_entity,
    forms_in,
    identity_field,
    init_form,
    is_initialized,
    integer_field,
    reduce_forms,
    resolve_instances,
    subform_field,
    subform_paths,
    text_field,
    update_field,
    update_forms,
    validate_form,
)

from conftest import PERSON, PHONE, PersonForm, PhoneForm


class LineItemForm(FormEntitySpec):
    table = "item/by-id"

    @classmethod
    def query(cls):
        return ["db/id", "item/qty"]

    @classmethod
    def form_elements(cls):
        return [identity_field("db/id"), integer_field("item/qty")]


class OrderForm(FormEntitySpec):
    table = "order/by-id"

    @classmethod
    def query(cls):
        return ["db/id", Join("order/items", LineItemForm)]

    @classmethod
    def form_elements(cls):
        return [identity_field("db/id"), subform_field("order/items", LineItemForm, "many")]


class CustomerForm(FormEntitySpec):
    table = "customer/by-id"

    @classmethod
    def query(cls):
        return ["db/id", "customer/name", Join("customer/orders", OrderForm)]

    @classmethod
    def form_elements(cls):
        return [
            identity_field("db/id"),
            text_field("customer/name"),
            subform_field("customer/orders", OrderForm, "many"),
        ]


def order_store():
    customer = Ident("customer/by-id", 1)
    o1, o2 = Ident("order/by-id", 10), Ident("order/by-id", 11)
    i1, i2, i3 = Ident("item/by-id", 100), Ident("item/by-id", 101), Ident("item/by-id", 102)
    store = {
        customer: {"db/id": 1, "customer/name": "Ada", "customer/orders": [o1, o2]},
        o1: {"db/id": 10, "order/items": [i1, i2]},
        o2: {"db/id": 11, "order/items": [i3]},
        i1: {"db/id": 100, "item/qty": 1},
        i2: {"db/id": 101, "item/qty": 2},
        i3: {"db/id": 102, "item/qty": 3},
    }
    return customer, store


class TestSubformPaths:
    """Test static subform discovery."""

    def test_single_level(self):
        assert subform_paths(PersonForm) == [(("person/phone-numbers",), PhoneForm)]

    def test_nested_paths(self):
        assert subform_paths(CustomerForm) == [
            (("customer/orders",), OrderForm),
            (("customer/orders", "order/items"), LineItemForm),
        ]

    def test_no_subforms(self):
        assert subform_paths(PhoneForm) == []

    def test_join_without_subform_declaration_ignored(self):
        class LooseForm(FormEntitySpec):
            table = "loose"

            @classmethod
            def query(cls):
                return ["db/id", Join("loose/phone", PhoneForm)]

            @classmethod
            def form_elements(cls):
                return [identity_field("db/id")]

        assert subform_paths(LooseForm) == []

    def test_union_join_excluded_with_warning(self, caplog):
        class UnionForm(FormEntitySpec):
            table = "union"

            @classmethod
            def query(cls):
                return ["db/id", Join("union/items", {"phone": PhoneForm, "person": PersonForm})]

            @classmethod
            def form_elements(cls):
                return [identity_field("db/id"), subform_field("union/items", PhoneForm, "many")]

        with caplog.at_level(logging.WARNING, logger="formstate.resolver"):
            assert subform_paths(UnionForm) == []
        assert "union" in caplog.text

    def test_recursive_join_excluded_with_warning(self, caplog):
        class TreeForm(FormEntitySpec):
            table = "tree"

            @classmethod
            def query(cls):
                return ["db/id", Join("tree/children", ...)]

            @classmethod
            def form_elements(cls):
                return [identity_field("db/id"), subform_field("tree/children", PhoneForm, "many")]

        with caplog.at_level(logging.WARNING, logger="formstate.resolver"):
            assert subform_paths(TreeForm) == []
        assert "recursive" in caplog.text

    def test_incapable_join_target_excluded(self, caplog):
        class NotAForm:
            pass

        class BrokenForm(FormEntitySpec):
            table = "broken"

            @classmethod
            def query(cls):
                return ["db/id", Join("broken/x", NotAForm)]

            @classmethod
            def form_elements(cls):
                return [identity_field("db/id"), subform_field("broken/x", NotAForm)]

        with caplog.at_level(logging.WARNING):
            assert subform_paths(BrokenForm) == []

    def test_schema_cycle_terminates(self):
        from test_overlay import AForm, BForm
        assert subform_paths(AForm) == [(("a/b",), BForm), (("a/b", "b/a"), AForm)]


class TestResolveInstances:
    """Test live path resolution."""

    def test_to_many_fan_out(self):
        customer, store = order_store()
        result = resolve_instances(store, store[customer], ("customer/orders", "order/items"))
        assert result == [Ident("item/by-id", 100), Ident("item/by-id", 101), Ident("item/by-id", 102)]

    def test_to_many_terminal(self):
        customer, store = order_store()
        result = resolve_instances(store, store[customer], ("customer/orders",))
        assert result == [Ident("order/by-id", 10), Ident("order/by-id", 11)]

    def test_to_one_chain(self):
        a, b = Ident("a", 1), Ident("b", 2)
        store = {a: {"next": b}, b: {"next": Ident("c", 3)}}
        assert resolve_instances(store, store[a], ("next", "next")) == [Ident("c", 3)]

    def test_missing_property(self):
        customer, store = order_store()
        assert resolve_instances(store, store[customer], ("customer/invoices",)) == []

    def test_missing_intermediate_entity(self):
        customer, store = order_store()
        del store[Ident("order/by-id", 11)]
        result = resolve_instances(store, store[customer], ("customer/orders", "order/items"))
        assert result == [Ident("item/by-id", 100), Ident("item/by-id", 101)]

    def test_empty_path(self):
        customer, store = order_store()
        assert resolve_instances(store, store[customer], ()) == []


class TestFormsIn:
    """Test whole-tree resolution."""

    def test_root_first_then_all_instances(self):
        customer, store = order_store()
        nodes = forms_in(store, CustomerForm, customer)
        assert [n.ident.table for n in nodes] == [
            "customer/by-id", "order/by-id", "order/by-id", "item/by-id", "item/by-id", "item/by-id",
        ]
        assert nodes[0].spec is CustomerForm
        assert nodes[-1].spec is LineItemForm

    def test_deduplicates(self, person_store):
        person_store[PERSON]["person/phone-numbers"] = [PHONE, PHONE]
        nodes = forms_in(person_store, PersonForm, PERSON)
        assert [n.ident for n in nodes] == [PERSON, PHONE]

    def test_drops_unresolved(self, person_store):
        person_store[PERSON]["person/phone-numbers"] = [PHONE, Ident("phone/by-id", 404)]
        nodes = forms_in(person_store, PersonForm, PERSON)
        assert [n.ident for n in nodes] == [PERSON, PHONE]

    def test_drops_nil_keys(self, person_store):
        nil_phone = Ident("phone/by-id", None)
        person_store[nil_phone] = {"phone/number": ""}
        person_store[PERSON]["person/phone-numbers"] = [PHONE, nil_phone]
        nodes = forms_in(person_store, PersonForm, PERSON)
        assert nil_phone not in [n.ident for n in nodes]

    def test_node_carries_entity(self, person_store):
        nodes = forms_in(person_store, PersonForm, PERSON)
        assert nodes[1].entity is person_store[PHONE]


class TestUpdateAndReduce:
    """Test tree map and fold."""

    def test_reduce_counts_forms(self):
        customer, store = order_store()
        store = init_form(store, CustomerForm, customer)
        assert reduce_forms(store, customer, lambda n, node: n + 1, 0) == 6

    def test_update_applies_to_every_form(self, person_form_store):
        def mark(node):
            entity = dict(node.entity)
            entity["seen"] = True
            return entity

        store = update_forms(person_form_store, PERSON, mark)
        assert store[PERSON]["seen"] and store[PHONE]["seen"]
        assert "seen" not in person_form_store[PERSON]

    def test_missing_root_fails(self, person_form_store):
        with pytest.raises(EntityNotFoundError):
            reduce_forms(person_form_store, Ident("people/by-id", 2), lambda a, n: a, None)

    def test_uninitialized_root_fails(self, person_store):
        with pytest.raises(NotInitializedError):
            reduce_forms(person_store, PERSON, lambda a, n: a, None)

    def test_uninitialized_subform_fails(self, person_store):
        person_store[PERSON] = build_form(PersonForm, person_store[PERSON])
        with pytest.raises(NotInitializedError) as exc:
            reduce_forms(person_store, PERSON, lambda a, n: a, None)
        assert exc.value.ident == PHONE


class NotAForm:
    """Plain class without form capabilities."""


class MismatchForm(FormEntitySpec):
    """Subform element targets an incapable class while the query joins PhoneForm."""
    table = "m"

    @classmethod
    def query(cls):
        return ["db/id", "m/name", Join("m/phone", PhoneForm)]

    @classmethod
    def form_elements(cls):
        return [identity_field("db/id"), text_field("m/name"), subform_field("m/phone", NotAForm)]


class OtherTargetForm(FormEntitySpec):
    """Subform element and query join name two different capable specs."""
    table = "o"

    @classmethod
    def query(cls):
        return ["db/id", Join("o/phone", PhoneForm)]

    @classmethod
    def form_elements(cls):
        return [identity_field("db/id"), subform_field("o/phone", LineItemForm)]


class TestMismatchedSubformTargets:
    """Subform elements whose target disagrees with the query are skipped everywhere."""

    M = Ident("m", 1)
    PHONE_2 = Ident("phone/by-id", 2)

    def store(self):
        return {
            self.M: {"db/id": 1, "m/name": "m", "m/phone": self.PHONE_2},
            self.PHONE_2: {"db/id": 2, "phone/number": "(555) 121-2121"},
        }

    def test_incapable_link_target_excluded(self, caplog):
        with caplog.at_level(logging.WARNING, logger="formstate.overlay"):
            assert subform_paths(MismatchForm) == []
        assert "does not provide ident, query and form_elements" in caplog.text

    def test_different_link_target_excluded(self, caplog):
        with caplog.at_level(logging.WARNING, logger="formstate.overlay"):
            assert subform_paths(OtherTargetForm) == []
        assert "not traversed" in caplog.text

    def test_init_and_forms_in_agree(self):
        store = init_form(self.store(), MismatchForm, self.M)
        assert not is_initialized(store[self.PHONE_2])
        assert [n.ident for n in forms_in(store, MismatchForm, self.M)] == [self.M]

    def test_tree_operations_skip_excluded_link(self):
        store = init_form(self.store(), MismatchForm, self.M)
        store = validate_form(store, self.M)
        store = update_field(store, self.M, "m/name", "renamed")
        store = commit_to_entity(store, self.M)
        assert store[self.M]["m/name"] == "renamed"
        assert store[self.PHONE_2] == self.store()[self.PHONE_2]

    def test_different_target_not_initialized(self):
        o, phone = Ident("o", 1), Ident("phone/by-id", 3)
        store = {o: {"db/id": 1, "o/phone": phone}, phone: {"db/id": 3}}
        store = init_form(store, OtherTargetForm, o)
        assert not is_initialized(store[phone])
        assert reduce_forms(store, o, lambda n, node: n + 1, 0) == 1
