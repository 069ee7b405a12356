"""Tests for handler signature introspection and type matching."""

from typing import Any, List, Literal, Optional, Union

import pytest

from cmdwire.exceptions import ArgumentCountError, ArgumentTypeError, InvalidCommandError
from cmdwire.signature import (
    TYPE_CHECK_EXACT,
    TYPE_CHECK_SUBCLASS,
    HandlerSignature,
    type_matches,
)


class Client:
    pass


class Update:
    pass


class CallbackUpdate(Update):
    pass


# -------------------------------------------------------------------
# Introspection
# -------------------------------------------------------------------

class TestFromCallable:
    """Tests for HandlerSignature.from_callable."""

    def test_plain_function(self):
        def greet(name: str, times: int):
            pass

        sig = HandlerSignature.from_callable(greet)
        assert sig.names == ("name", "times")
        assert sig.param_types == (str, int)
        assert sig.arity == 2
        assert sig.variadic is False

    def test_unannotated_parameters_are_any(self):
        def handler(a, b):
            pass

        sig = HandlerSignature.from_callable(handler)
        assert sig.param_types == (Any, Any)

    def test_skip_first_drops_self(self):
        class Commands:
            def greet(self, client: Client, update: Update):
                pass

        sig = HandlerSignature.from_callable(Commands.greet, skip_first=True)
        assert sig.names == ("client", "update")
        assert sig.param_types == (Client, Update)

    def test_bound_method_excludes_self(self):
        class Commands:
            def greet(self, client: Client, update: Update):
                pass

        sig = HandlerSignature.from_callable(Commands().greet)
        assert sig.arity == 2

    def test_string_annotations_are_resolved(self):
        def handler(client: "Client", update: "Update"):
            pass

        sig = HandlerSignature.from_callable(handler)
        assert sig.param_types == (Client, Update)

    def test_unresolvable_annotations_fall_back(self):
        def handler(client: "NoSuchType", update: "Update"):  # noqa: F821
            pass

        sig = HandlerSignature.from_callable(handler)
        assert sig.param_types == ("NoSuchType", Update)

        sig.check([object(), Update()])
        with pytest.raises(ArgumentTypeError) as exc_info:
            sig.check([object(), "not an update"])
        assert exc_info.value.position == 1
        assert exc_info.value.expected_type is Update

    def test_unresolvable_annotation_keeps_optional_checks(self):
        def handler(client: "NoSuchType", name: "Optional[str]"):  # noqa: F821
            pass

        sig = HandlerSignature.from_callable(handler)
        sig.check([1, None])
        with pytest.raises(ArgumentTypeError):
            sig.check([1, 2])

    def test_var_positional(self):
        def handler(first: str, *rest: int):
            pass

        sig = HandlerSignature.from_callable(handler)
        assert sig.arity == 1
        assert sig.variadic is True
        assert sig.variadic_type is int

    def test_keyword_only_with_default_is_ignored(self):
        def handler(a: str, *, verbose: bool = False):
            pass

        sig = HandlerSignature.from_callable(handler)
        assert sig.names == ("a",)

    def test_required_keyword_only_rejected(self):
        def handler(a: str, *, required: bool):
            pass

        with pytest.raises(InvalidCommandError, match="required"):
            HandlerSignature.from_callable(handler)

    def test_uninspectable_callable_rejected(self):
        with pytest.raises(InvalidCommandError):
            HandlerSignature.from_callable(42)


# -------------------------------------------------------------------
# type_matches
# -------------------------------------------------------------------

class TestTypeMatches:
    """Tests for type_matches in both modes."""

    def test_exact_accepts_same_type(self):
        assert type_matches(Update, Update(), TYPE_CHECK_EXACT)

    def test_exact_rejects_subclass(self):
        assert not type_matches(Update, CallbackUpdate(), TYPE_CHECK_EXACT)

    def test_exact_rejects_bool_for_int(self):
        assert not type_matches(int, True, TYPE_CHECK_EXACT)

    def test_subclass_accepts_subclass(self):
        assert type_matches(Update, CallbackUpdate(), TYPE_CHECK_SUBCLASS)

    def test_subclass_rejects_unrelated(self):
        assert not type_matches(Update, Client(), TYPE_CHECK_SUBCLASS)

    @pytest.mark.parametrize("annotation", [Any, object])
    def test_any_and_object_accept_everything(self, annotation):
        assert type_matches(annotation, 1)
        assert type_matches(annotation, None)
        assert type_matches(annotation, Client())

    def test_optional(self):
        assert type_matches(Optional[str], None)
        assert type_matches(Optional[str], "x")
        assert not type_matches(Optional[str], 1)

    def test_union(self):
        assert type_matches(Union[int, str], 1)
        assert type_matches(Union[int, str], "1")
        assert not type_matches(Union[int, str], 1.0)

    def test_none_annotation(self):
        assert type_matches(type(None), None)
        assert not type_matches(type(None), 0)

    def test_generic_matches_origin(self):
        assert type_matches(List[int], [1, 2])
        assert type_matches(List[int], ["not", "checked"])
        assert not type_matches(List[int], (1, 2))

    def test_literal(self):
        assert type_matches(Literal["yes", "no"], "yes")
        assert not type_matches(Literal["yes", "no"], "maybe")

    def test_unresolved_forward_reference_accepts(self):
        assert type_matches("SomeType", 1)


# -------------------------------------------------------------------
# check
# -------------------------------------------------------------------

class TestCheck:
    """Tests for HandlerSignature.check."""

    def _greet_signature(self):
        def greet(client: Client, update: Update):
            pass
        return HandlerSignature.from_callable(greet)

    def test_valid_arguments_pass(self):
        self._greet_signature().check([Client(), Update()])

    def test_too_few_arguments(self):
        with pytest.raises(ArgumentCountError) as exc_info:
            self._greet_signature().check([Client()])
        assert exc_info.value.expected == 2
        assert exc_info.value.actual == 1

    def test_too_many_arguments(self):
        with pytest.raises(ArgumentCountError) as exc_info:
            self._greet_signature().check([Client(), Update(), 3])
        assert (exc_info.value.expected, exc_info.value.actual) == (2, 3)

    def test_wrong_type_reports_first_mismatch(self):
        with pytest.raises(ArgumentTypeError) as exc_info:
            self._greet_signature().check([Update(), "x"])
        err = exc_info.value
        assert err.position == 0
        assert err.expected_type is Client
        assert err.actual_type is Update

    def test_subclass_mode(self):
        sig = self._greet_signature()
        with pytest.raises(ArgumentTypeError):
            sig.check([Client(), CallbackUpdate()], TYPE_CHECK_EXACT)
        sig.check([Client(), CallbackUpdate()], TYPE_CHECK_SUBCLASS)

    def test_variadic_accepts_extra_arguments(self):
        def handler(first: str, *rest: int):
            pass

        sig = HandlerSignature.from_callable(handler)
        sig.check(["a"])
        sig.check(["a", 1, 2, 3])
        with pytest.raises(ArgumentTypeError) as exc_info:
            sig.check(["a", 1, "two"])
        assert exc_info.value.position == 2
        with pytest.raises(ArgumentCountError):
            sig.check([])

    def test_zero_arity(self):
        def handler():
            pass

        sig = HandlerSignature.from_callable(handler)
        sig.check([])
        with pytest.raises(ArgumentCountError):
            sig.check([1])
