"""Tests for collection actions and the action dispatcher."""

from datetime import UTC, datetime

import pytest

from markdown_workflow.actions import (
    ActionDispatcher,
    create_collection,
    resolve_parameters,
    update_collection,
)
from markdown_workflow.actions.format import detect_template_type, template_artifact_map
from markdown_workflow.converters import ConversionResult
from markdown_workflow.errors import (
    CollectionExistsError,
    CollectionNotFoundError,
    ConversionError,
    ParameterError,
    TemplateNotFoundError,
    UnknownActionError,
    ValidationError,
)
from markdown_workflow.processors import (
    ArtifactType,
    BaseProcessor,
    EmojiProcessor,
    ProcessingResult,
    ProcessorRegistry,
)
from markdown_workflow.workflow import ActionParameter, ActionSpec


def snapshot(root):
    return {str(p.relative_to(root)): p.read_bytes() if p.is_file() else None for p in sorted(root.rglob("*"))}


class StampProcessor(BaseProcessor):
    """Writes the same assets/stamp.png for every document it sees."""

    name = "stamp"

    def can_process(self, content):
        return True

    def detect_blocks(self, content):
        return []

    def process(self, content, context):
        self.ensure_directories(context)
        path = context.assets_dir / "stamp.png"
        path.write_bytes(b"png")
        return ProcessingResult(
            success=True,
            processed_content=content,
            artifacts=[self.artifact(path, ArtifactType.ASSET, context)],
            blocks_processed=1,
        )


@pytest.fixture
def dispatcher(action_env):
    return ActionDispatcher(action_env)


class TestResolveParameters:
    """Tests for resolve_parameters."""

    def test_defaults_applied(self):
        """Test declared defaults fill missing values."""
        action = ActionSpec(name="format", parameters=[ActionParameter(name="format", default="docx")])

        assert resolve_parameters(action, {}) == {"format": "docx"}

    def test_required_missing(self):
        """Test missing required parameters are rejected."""
        action = ActionSpec(name="notes", parameters=[ActionParameter(name="note_type", required=True)])

        with pytest.raises(ParameterError, match="note_type"):
            resolve_parameters(action, {"note_type": ""})

    def test_enum_checked(self):
        """Test enum parameters must use a declared option."""
        action = ActionSpec(
            name="format", parameters=[ActionParameter(name="format", type="enum", options=["docx", "html"])]
        )

        with pytest.raises(ParameterError, match="invalid format 'rtf'"):
            resolve_parameters(action, {"format": "rtf"})

    def test_coercion(self):
        """Test array and boolean values given as strings."""
        action = ActionSpec(
            name="x",
            parameters=[ActionParameter(name="items", type="array"), ActionParameter(name="flag", type="boolean")],
        )

        resolved = resolve_parameters(action, {"items": "a, b,", "flag": "yes"})

        assert resolved == {"items": ["a", "b"], "flag": True}

    def test_undeclared_pass_through(self):
        """Test parameters the action does not declare are kept."""
        action = ActionSpec(name="x")

        assert resolve_parameters(action, {"extra": 1}) == {"extra": 1}


class TestActionDispatcher:
    """Tests for ActionDispatcher routing."""

    def test_implemented_and_available(self, dispatcher, job_workflow):
        """Test declared actions are filtered by what is implemented."""
        assert dispatcher.implemented == ["add", "format", "notes"]
        assert dispatcher.available(job_workflow) == ["format", "add", "notes"]

    def test_undeclared_action(self, dispatcher, job_workflow, collection):
        """Test actions missing from the workflow are rejected."""
        with pytest.raises(UnknownActionError, match="not declared"):
            dispatcher.execute(job_workflow, collection, "publish")

    def test_declared_but_unimplemented(self, dispatcher, job_workflow, collection):
        """Test a declared action without a handler is rejected."""
        with pytest.raises(UnknownActionError, match="not implemented") as exc_info:
            dispatcher.execute(job_workflow, collection, "scrape", {"url": "https://example.com"})

        assert exc_info.value.action == "scrape"


class TestNotesAction:
    """Tests for the notes action."""

    def test_missing_note_type_touches_nothing(self, dispatcher, job_workflow, collection, store):
        """Test a missing note_type fails before any file is written."""
        before = snapshot(store.collections_dir)

        with pytest.raises(ParameterError, match="note_type"):
            dispatcher.execute(job_workflow, collection, "notes", {})

        assert snapshot(store.collections_dir) == before

    def test_creates_notes(self, dispatcher, job_workflow, collection):
        """Test note_type becomes the filename prefix and template variables are filled."""
        result = dispatcher.execute(job_workflow, collection, "notes", {"note_type": "recruiter", "interviewer": "Sam"})

        notes = collection.path / "recruiter_notes.md"
        assert result.success is True
        assert result.action == "notes"
        assert result.created == [notes]
        assert notes.read_text() == (
            "# Recruiter Notes\n\nCompany: Acme Corp\nInterviewer: Sam\nDate: 2025-01-21\n"
        )

    def test_multi_word_note_type(self, dispatcher, job_workflow, collection):
        """Test note types are sanitized for the filename."""
        dispatcher.execute(job_workflow, collection, "notes", {"note_type": "Hiring Manager"})

        assert (collection.path / "hiring_manager_notes.md").exists()

    def test_existing_file_not_overwritten(self, dispatcher, job_workflow, collection):
        """Test a second note of the same type is refused."""
        dispatcher.execute(job_workflow, collection, "notes", {"note_type": "technical"})
        (collection.path / "technical_notes.md").write_text("my notes")

        with pytest.raises(ValidationError, match="File already exists: technical_notes.md"):
            dispatcher.execute(job_workflow, collection, "notes", {"note_type": "technical"})

        assert (collection.path / "technical_notes.md").read_text() == "my notes"


class TestAddAction:
    """Tests for the add action."""

    def test_add_without_prefix(self, dispatcher, job_workflow, collection):
        """Test the template output pattern names the file."""
        result = dispatcher.execute(job_workflow, collection, "add", {"template": "resume"})

        resume = collection.path / "resume_jane_doe.md"
        assert result.created == [resume]
        assert resume.read_text() == "# Jane Doe\n\nApplying to Acme Corp as Engineer.\n"

    def test_add_with_prefix(self, dispatcher, job_workflow, collection):
        """Test a prefix replaces the variable part of the output name."""
        dispatcher.execute(job_workflow, collection, "add", {"template": "resume", "prefix": "Acme Tailored"})

        assert (collection.path / "acme_tailored_resume.md").exists()

    def test_unknown_template(self, dispatcher, job_workflow, collection):
        """Test unknown templates list the available ones."""
        with pytest.raises(TemplateNotFoundError, match="Available templates: resume, cover_letter, notes"):
            dispatcher.execute(job_workflow, collection, "add", {"template": "portfolio"})

    def test_missing_template_parameter(self, dispatcher, job_workflow, collection):
        """Test the template parameter is required."""
        with pytest.raises(ParameterError):
            dispatcher.execute(job_workflow, collection, "add", {})


class TestFormatAction:
    """Tests for the format action."""

    @pytest.fixture
    def resume(self, collection):
        path = collection.path / "resume_jane_doe.md"
        path.write_text("# Resume :rocket:\n")
        return path

    def test_format_docx_with_reference(self, dispatcher, job_workflow, collection, resume, fake_converter):
        """Test docx output uses the template's reference document."""
        result = dispatcher.execute(job_workflow, collection, "format", {})

        output = collection.path / "formatted" / "resume_jane_doe.docx"
        assert result.created == [output]
        assert output.exists()
        assert result.messages == ["Created: formatted/resume_jane_doe.docx (with reference doc)"]

        kwargs = fake_converter.convert.call_args.kwargs
        assert kwargs["reference_doc"] == job_workflow.resolve("statics/resume_reference.docx")
        assert kwargs["resource_paths"] == [collection.path / "intermediate", collection.path]
        assert fake_converter.convert.call_args.args[0] == collection.path / "intermediate" / "resume_jane_doe.md"

    def test_format_all(self, dispatcher, job_workflow, collection, resume):
        """Test 'all' converts to every declared format."""
        result = dispatcher.execute(job_workflow, collection, "format", {"format": "all"})

        assert sorted(p.name for p in result.created) == [
            "resume_jane_doe.docx",
            "resume_jane_doe.html",
            "resume_jane_doe.pdf",
        ]

    def test_html_has_no_reference(self, dispatcher, job_workflow, collection, resume, fake_converter):
        """Test reference documents only apply to docx."""
        dispatcher.execute(job_workflow, collection, "format", {"format": "html"})

        assert fake_converter.convert.call_args.kwargs["reference_doc"] is None

    def test_invalid_format(self, dispatcher, job_workflow, collection, resume):
        """Test formats outside the declared options are rejected."""
        with pytest.raises(ParameterError, match="rtf"):
            dispatcher.execute(job_workflow, collection, "format", {"format": "rtf"})

    def test_artifact_filter(self, dispatcher, job_workflow, collection, resume):
        """Test only files produced by the requested template are converted."""
        (collection.path / "cover_letter_jane_doe.md").write_text("Dear team")

        result = dispatcher.execute(job_workflow, collection, "format", {"artifacts": ["cover_letter"]})

        assert [p.name for p in result.created] == ["cover_letter_jane_doe.docx"]

    def test_artifact_filter_no_match(self, dispatcher, job_workflow, collection, resume):
        """Test a filter matching no files is a parameter error."""
        with pytest.raises(ParameterError, match="no files found"):
            dispatcher.execute(job_workflow, collection, "format", {"artifacts": "cover_letter"})

    def test_processors_run_before_conversion(self, action_env, job_workflow, collection, resume):
        """Test the converter receives processed markdown."""
        action_env.registry = ProcessorRegistry([EmojiProcessor()])
        dispatcher = ActionDispatcher(action_env)

        dispatcher.execute(job_workflow, collection, "format", {})

        assert (collection.path / "intermediate" / "resume_jane_doe.md").read_text() == "# Resume 🚀\n"

    def test_shared_asset_name_warns(self, action_env, job_workflow, collection, resume):
        """Test a second file writing the same asset path is reported."""
        (collection.path / "cover_letter_jane_doe.md").write_text("Dear team")
        action_env.registry = ProcessorRegistry([StampProcessor()])

        result = ActionDispatcher(action_env).execute(job_workflow, collection, "format", {})

        assert len(result.created) == 2
        assert result.warnings == [
            "resume_jane_doe.md overwrote ../assets/stamp.png from cover_letter_jane_doe.md; "
            "give its diagrams unique names"
        ]

    def test_distinct_assets_do_not_warn(self, action_env, job_workflow, collection, resume):
        """Test one file per format run never collides with itself."""
        action_env.registry = ProcessorRegistry([StampProcessor()])

        result = ActionDispatcher(action_env).execute(job_workflow, collection, "format", {"format": "all"})

        assert len(result.created) == 3
        assert result.warnings == []

    def test_conversion_failure(self, dispatcher, job_workflow, collection, resume, fake_converter):
        """Test converter failures raise ConversionError."""
        fake_converter.convert.side_effect = None
        fake_converter.convert.return_value = ConversionResult(
            success=False, output_file=collection.path / "x.docx", error="pandoc not found"
        )

        with pytest.raises(ConversionError, match="pandoc not found"):
            dispatcher.execute(job_workflow, collection, "format", {})

    def test_template_artifact_map(self, job_workflow):
        """Test files are matched to the templates that produced them."""
        files = ["resume_jane_doe.md", "recruiter_notes.md", "cover_letter_jane_doe.md", "misc.md"]

        mapping = template_artifact_map(job_workflow, files)

        assert mapping["resume"] == ["resume_jane_doe.md"]
        assert mapping["cover_letter"] == ["cover_letter_jane_doe.md"]
        assert mapping["notes"] == ["recruiter_notes.md"]

    def test_detect_template_type(self, job_workflow):
        """Test the longest matching template name wins."""
        assert detect_template_type(job_workflow, "cover_letter_jane_doe") == "cover_letter"
        assert detect_template_type(job_workflow, "misc") is None


class TestCreateCollection:
    """Tests for create_collection."""

    def test_create_renders_templates(self, store, job_workflow, action_env):
        """Test a new collection starts in the first stage with rendered templates."""
        result = create_collection(
            store, job_workflow, "acme_20250121", {"company": "Acme Corp", "role": "Engineer"}, action_env
        )

        collection = result.collection
        assert collection.path == store.collections_dir / "job" / "active" / "acme_20250121"
        assert collection.status == "active"
        assert collection.metadata.date_created == "2025-01-21T10:00:00.000Z"
        assert collection.metadata.extra == {"company": "Acme Corp", "role": "Engineer"}
        assert sorted(p.name for p in result.created) == ["cover_letter_jane_doe.md", "resume_jane_doe.md"]
        assert (collection.path / "cover_letter_jane_doe.md").read_text() == "Dear Acme Corp team,\n\nJane Doe\n"

    def test_create_duplicate(self, store, job_workflow, action_env, collection):
        """Test ids cannot be reused."""
        with pytest.raises(CollectionExistsError):
            create_collection(store, job_workflow, collection.collection_id, {}, action_env)

    def test_reserved_fields_rejected(self, store, job_workflow, action_env):
        """Test fields named like core metadata leave no collection behind."""
        with pytest.raises(ValidationError, match="status, collection_id"):
            create_collection(
                store, job_workflow, "acme_x", {"status": "submitted", "collection_id": "other"}, action_env
            )

        assert not store.exists("job", "acme_x")
        assert not (store.collections_dir / "job" / "active" / "acme_x").exists()

    def test_missing_template_file_creates_nothing(self, store, job_workflow, action_env):
        """Test a broken template is detected before the directory exists."""
        job_workflow.resolve("templates/resume.md").unlink()

        with pytest.raises(TemplateNotFoundError):
            create_collection(store, job_workflow, "acme_20250121", {}, action_env)

        assert not store.exists("job", "acme_20250121")
        assert not (store.collections_dir / "job").exists()


class TestUpdateCollection:
    """Tests for update_collection."""

    def test_update_fields(self, store, job_workflow, action_env, collection):
        """Test new and changed fields are saved and date_modified is stamped."""
        fields = {"url": "https://acme.example/42", "role": "Lead"}

        update_collection(store, job_workflow, collection.collection_id, fields, action_env)

        reloaded = store.get("job", collection.collection_id)
        assert reloaded.metadata.extra == {"company": "Acme Corp", "role": "Lead", "url": "https://acme.example/42"}
        assert reloaded.metadata.date_modified == "2025-01-21T10:00:00.000Z"
        assert reloaded.metadata.date_created == "2025-01-20T09:00:00.000Z"
        assert reloaded.status == "active"

    def test_date_modified_never_goes_back(self, store, job_workflow, action_env, collection):
        """Test a clock behind the stored timestamp keeps the stored one."""
        action_env.clock = lambda: datetime(2024, 6, 1, tzinfo=UTC)

        updated = update_collection(store, job_workflow, collection.collection_id, {"url": "x"}, action_env)

        assert updated.metadata.date_modified == "2025-01-20T09:00:00.000Z"

    def test_no_fields(self, store, job_workflow, action_env, collection):
        """Test an update without fields is a parameter error and writes nothing."""
        before = snapshot(collection.path)

        with pytest.raises(ParameterError, match="at least one field"):
            update_collection(store, job_workflow, collection.collection_id, {}, action_env)

        assert snapshot(collection.path) == before

    def test_reserved_field(self, store, job_workflow, action_env, collection):
        """Test core metadata cannot be changed through update."""
        with pytest.raises(ValidationError, match="date_created"):
            update_collection(store, job_workflow, collection.collection_id, {"date_created": "2020"}, action_env)

        assert store.get("job", collection.collection_id).metadata.date_created == "2025-01-20T09:00:00.000Z"

    def test_missing_collection(self, store, job_workflow, action_env):
        """Test an unknown id raises CollectionNotFoundError."""
        with pytest.raises(CollectionNotFoundError):
            update_collection(store, job_workflow, "ghost", {"url": "x"}, action_env)
