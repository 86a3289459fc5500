"""Integration tests for a complete builder session.

Tests cover end-to-end scenarios combining:
- Drag gestures resolved into builder mutations
- Field configuration through updates
- Publishing and snapshot isolation
- Filling, validating and submitting a published form
- Configuration loading
"""

import pytest

from formbuilder import FormBuilderRuntime, RemoveField, UpdateField
from formbuilder.config import BuilderConfig
from formbuilder.errors import FormNotFoundError, SubmissionFailure
from formbuilder.events import EventEmitter
from formbuilder.submission import JsonFileSubmissionEndpoint, SubmissionReceipt
from formbuilder.types import EventType, FieldType


def palette(field_type):
    return {"sourceKind": "palette", "type": field_type}


def canvas(field_id):
    return {"sourceKind": "canvas-item", "fieldId": field_id}


@pytest.fixture
def runtime(tmp_path):
    return FormBuilderRuntime(endpoint=JsonFileSubmissionEndpoint(tmp_path))


class TestHappyPath:
    """Test the full build, publish, fill and submit flow."""

    def test_build_publish_submit(self, runtime, tmp_path):
        """Test drag fields in, configure, reorder, publish and submit.

        1. Three palette drops add a text, a select and a checkbox field
        2. The fields are configured through updates
        3. The checkbox is dragged to the top
        4. The form is published and filled
        5. Invalid values are rejected, valid ones stored on disk
        """
        for field_type in ("text", "select", "checkbox"):
            runtime.handle_drag_end(palette(field_type), "canvas")
        email_id, select_id, checkbox_id = (field.id for field in runtime.state.fields)

        runtime.dispatch(UpdateField(email_id, {"label": "Email", "inputType": "email", "required": True}))
        runtime.dispatch(UpdateField(select_id, {
            "label": "Plan",
            "required": True,
            "placeholder": "Choose a plan",
            "options": [
                {"id": "p1", "label": "Free", "value": "free"},
                {"id": "p2", "label": "Pro", "value": "pro"},
            ],
        }))
        runtime.dispatch(UpdateField(checkbox_id, {"label": "Terms", "required": True}))

        mutation = runtime.handle_drag_end(canvas(checkbox_id), email_id)
        assert mutation is not None
        assert [field.id for field in runtime.state.fields] == [checkbox_id, email_id, select_id]

        form_id = runtime.publish()
        filler = runtime.open_form(form_id)
        assert runtime.open_form(form_id) is filler

        filler.set_value(email_id, "ada-at-example")
        filler.set_value(select_id, "")
        outcome = filler.submit()
        assert isinstance(outcome, SubmissionFailure)
        assert outcome.errors == {
            checkbox_id: "Terms is required",
            email_id: "Please enter a valid email address",
            select_id: "Plan is required",
        }

        filler.set_value(checkbox_id, True)
        filler.set_value(email_id, "ada@example.com")
        filler.set_value(select_id, "pro")
        receipt = filler.submit()
        assert isinstance(receipt, SubmissionReceipt)

        records = JsonFileSubmissionEndpoint(tmp_path).list_submissions(form_id)
        assert len(records) == 1
        assert records[0]["data"] == {checkbox_id: True, email_id: "ada@example.com", select_id: "pro"}
        assert [field["id"] for field in records[0]["fields"]] == [checkbox_id, email_id, select_id]


class TestBuilderScenarios:
    """Test typical builder and filler scenarios."""

    def test_palette_select_drop(self, runtime):
        """Should add exactly one select field and reorder nothing."""
        runtime.handle_drag_end(palette("select"), "canvas")
        events = runtime.store.get_events()
        assert [event.type for event in events] == [EventType.FIELD_ADDED]
        assert runtime.state.fields[0].type == FieldType.SELECT

    def test_self_drop_changes_nothing(self, runtime):
        """Should leave state and event trail untouched."""
        runtime.handle_drag_end(palette("text"), "canvas")
        field_id = runtime.state.fields[0].id
        before = runtime.state

        assert runtime.handle_drag_end(canvas(field_id), field_id) is None
        assert runtime.state is before
        assert len(runtime.store.get_events()) == 1

    def test_required_checkbox_group(self, runtime):
        """Should require at least one ticked option."""
        runtime.handle_drag_end(palette("checkbox"), "canvas")
        field_id = runtime.state.fields[0].id
        runtime.dispatch(UpdateField(field_id, {
            "checkboxType": "multiple",
            "required": True,
            "options": [{"id": "o1", "label": "One", "value": "opt1"}],
        }))
        form_id = runtime.publish()

        assert runtime.validate(form_id, {field_id: []}) == {field_id: "checkbox field is required"}
        assert runtime.validate(form_id, {field_id: ["opt1"]}) == {}


class TestPublishedForms:
    """Test snapshot isolation and lookup through the runtime."""

    def test_published_form_unaffected_by_edits(self, runtime):
        """Should validate against the fields as they were at publish time."""
        runtime.handle_drag_end(palette("text"), "canvas")
        field_id = runtime.state.fields[0].id
        form_id = runtime.publish()

        runtime.dispatch(UpdateField(field_id, {"required": True}))
        runtime.dispatch(RemoveField(field_id))

        assert runtime.validate(form_id, {}) == {}
        assert runtime.get_form(form_id)[0].required is False

    def test_unknown_form(self, runtime):
        """Should raise FormNotFoundError for unknown form ids."""
        with pytest.raises(FormNotFoundError):
            runtime.open_form("form_missing")
        with pytest.raises(FormNotFoundError):
            runtime.submit("form_missing", {})

    def test_submit_in_one_call(self, runtime):
        """Should validate and store values passed to submit."""
        runtime.handle_drag_end(palette("textarea"), "canvas")
        field_id = runtime.state.fields[0].id
        runtime.dispatch(UpdateField(field_id, {"required": True}))
        form_id = runtime.publish()

        assert runtime.submit(form_id, {}).ok is False
        assert runtime.submit(form_id, {field_id: "Hello"}).ok is True

    def test_restored_session(self, runtime, tmp_path):
        """Should continue from a serialized builder state."""
        runtime.handle_drag_end(palette("radio"), "canvas")
        form_id = runtime.publish()

        restored = FormBuilderRuntime(
            endpoint=JsonFileSubmissionEndpoint(tmp_path),
            state=runtime.store.from_dict(runtime.store.to_dict()).state,
        )
        assert restored.get_form(form_id) == runtime.get_form(form_id)


class TestEventStream:
    """Test events reaching an external emitter."""

    def test_emitter_receives_publish(self, tmp_path):
        """Should forward the publish event with the form id."""
        emitter = EventEmitter()
        published = []
        emitter.on(EventType.FORM_PUBLISHED, published.append)
        runtime = FormBuilderRuntime(endpoint=JsonFileSubmissionEndpoint(tmp_path), emitter=emitter)

        runtime.handle_drag_end(palette("text"), "canvas")
        form_id = runtime.publish()

        assert [event.payload["formId"] for event in published] == [form_id]


class TestConfiguration:
    """Test BuilderConfig."""

    def test_defaults(self):
        """Should provide the documented defaults."""
        config = BuilderConfig()
        assert config.field_id_prefix == "fld_"
        assert config.textarea_default_rows == 3
        assert (config.textarea_min_rows, config.textarea_max_rows) == (2, 10)

    def test_from_env(self):
        """Should read FORMBUILDER_* variables."""
        config = BuilderConfig.from_env({
            "FORMBUILDER_FORM_ID_PREFIX": "f-",
            "FORMBUILDER_ID_HEX_LENGTH": "8",
            "FORMBUILDER_SUBMISSIONS_DIR": "/tmp/subs",
        })
        assert config.form_id_prefix == "f-"
        assert config.id_hex_length == 8
        assert config.submissions_dir == "/tmp/subs"
        assert config.option_id_prefix == "opt_"

    def test_invalid_bounds(self):
        """Should reject inconsistent row bounds."""
        with pytest.raises(ValueError):
            BuilderConfig(textarea_min_rows=6, textarea_max_rows=4)
        with pytest.raises(ValueError):
            BuilderConfig(textarea_default_rows=12)

    def test_runtime_uses_config(self, tmp_path):
        """Should generate ids with the configured prefixes."""
        config = BuilderConfig(field_id_prefix="x_", form_id_prefix="F")
        runtime = FormBuilderRuntime(config=config, endpoint=JsonFileSubmissionEndpoint(tmp_path))
        runtime.handle_drag_end(palette("text"), "canvas")
        assert runtime.state.fields[0].id.startswith("x_")
        assert runtime.publish().startswith("F")
