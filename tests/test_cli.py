import json
from pathlib import Path

from click.testing import CliRunner

from api_doc_builder.cli import main
from api_doc_builder.storage.keyvalue import JsonFileStore
from api_doc_builder.storage.state import PersistedState, StatePersistence

FIXTURES = Path(__file__).parent / "fixtures"


def _invoke(storage: Path, *args: str):
    runner = CliRunner()
    return runner.invoke(main, ["--storage", str(storage), *args])


def _state(storage: Path) -> PersistedState:
    return StatePersistence(JsonFileStore(storage)).load()


def _add_method(storage: Path, name: str = "getCustomer", verb: str = "GET") -> str:
    result = _invoke(storage, "add-method", name, "--verb", verb)
    assert result.exit_code == 0, result.output
    return _state(storage).document.methods[-1].id


class TestCliDocument:
    def test_first_run_creates_document(self, tmp_path):
        storage = tmp_path / "state.json"
        result = _invoke(storage, "show")
        assert result.exit_code == 0
        assert "v1.0.0." in result.output
        assert "No methods yet." in result.output
        assert _state(storage).document is not None

    def test_set_header(self, tmp_path):
        storage = tmp_path / "state.json"
        result = _invoke(storage, "set-header", "--name", "Customer", "--base-url", "https://api.example.com")
        assert result.exit_code == 0
        doc = _state(storage).document
        assert doc.resource_name == "Customer"
        assert doc.general_description.base_url == "https://api.example.com"
        assert doc.general_description.auth == "Authorization: Bearer Token"

    def test_set_header_requires_an_option(self, tmp_path):
        result = _invoke(tmp_path / "state.json", "set-header")
        assert result.exit_code != 0

    def test_new_requires_confirmation(self, tmp_path):
        storage = tmp_path / "state.json"
        _add_method(storage)
        old_id = _state(storage).document.id
        result = _invoke(storage, "new", "--yes")
        assert result.exit_code == 0
        state = _state(storage)
        assert state.document.id != old_id
        assert state.document.methods == []
        assert state.current_method_id is None


class TestCliMethods:
    def test_add_method_selects_it(self, tmp_path):
        storage = tmp_path / "state.json"
        method_id = _add_method(storage, verb="get")
        state = _state(storage)
        assert state.current_method_id == method_id
        assert state.document.methods[0].http_verb == "GET"
        result = _invoke(storage, "show")
        assert f"* GET    getCustomer  [{method_id}]" in result.output

    def test_update_and_delete_method(self, tmp_path):
        storage = tmp_path / "state.json"
        method_id = _add_method(storage)
        result = _invoke(storage, "update-method", method_id, "--purpose", "Read a customer", "--verb", "PUT")
        assert result.exit_code == 0
        method = _state(storage).document.methods[0]
        assert method.purpose == "Read a customer"
        assert method.http_verb == "PUT"

        result = _invoke(storage, "delete-method", method_id)
        assert result.exit_code == 0
        state = _state(storage)
        assert state.document.methods == []
        assert state.current_method_id is None

    def test_unknown_method(self, tmp_path):
        result = _invoke(tmp_path / "state.json", "delete-method", "missing")
        assert result.exit_code == 1
        assert "No method with id missing" in result.output

    def test_select_and_clear(self, tmp_path):
        storage = tmp_path / "state.json"
        first = _add_method(storage, "a")
        _add_method(storage, "b")
        assert _invoke(storage, "select", first).exit_code == 0
        assert _state(storage).current_method_id == first
        assert _invoke(storage, "select").exit_code == 0
        assert _state(storage).current_method_id is None

    def test_collections(self, tmp_path):
        storage = tmp_path / "state.json"
        method_id = _add_method(storage)
        assert _invoke(storage, "add-input", method_id, "document", "--format", "char(14)", "--required").exit_code == 0
        assert _invoke(storage, "add-input", method_id, "branch").exit_code == 0
        assert _invoke(storage, "add-output", method_id, "name", "--type", "char(60)").exit_code == 0
        assert _invoke(storage, "add-validation", method_id, "document", "--description", "Digits only").exit_code == 0
        assert _invoke(storage, "add-example", method_id, "--kind", "body", "--content", '{"a": 1}').exit_code == 0

        method = _state(storage).document.methods[0]
        assert [(p.name, p.required) for p in method.input_parameters] == [("document", True), ("branch", False)]
        assert method.output_parameters[0].type == "char(60)"
        assert method.validations[0].description == "Digits only"
        assert method.examples[0].content == '{"a": 1}'

        assert _invoke(storage, "move-item", method_id, "input_parameters", "1", "0").exit_code == 0
        method = _state(storage).document.methods[0]
        assert [p.name for p in method.input_parameters] == ["branch", "document"]

        item_id = method.input_parameters[0].id
        assert _invoke(storage, "remove-item", method_id, "input_parameters", item_id).exit_code == 0
        assert [p.name for p in _state(storage).document.methods[0].input_parameters] == ["document"]

    def test_move_item_out_of_range(self, tmp_path):
        storage = tmp_path / "state.json"
        method_id = _add_method(storage)
        result = _invoke(storage, "move-item", method_id, "examples", "0", "1")
        assert result.exit_code == 2

    def test_set_description(self, tmp_path):
        storage = tmp_path / "state.json"
        method_id = _add_method(storage)
        text_file = tmp_path / "flow.txt"
        text_file.write_text("Validate input.\n\nCall the backend.", encoding="utf-8")
        assert _invoke(storage, "set-description", method_id, str(text_file)).exit_code == 0
        blocks = _state(storage).document.methods[0].description_blocks
        assert [b.content for b in blocks] == ["Validate input.", "Call the backend."]


class TestCliVersions:
    def test_save_version_and_history(self, tmp_path):
        storage = tmp_path / "state.json"
        _add_method(storage)
        result = _invoke(storage, "save-version", "initial", "--kind", "minor")
        assert result.exit_code == 0
        state = _state(storage)
        assert len(state.history) == 1
        assert state.history[0].version.minor == 0
        assert state.document.version.minor == 1

        result = _invoke(storage, "history")
        assert "initial" in result.output
        assert "Total versions: 1 / 50" in result.output

    def test_blank_description_rejected(self, tmp_path):
        storage = tmp_path / "state.json"
        result = _invoke(storage, "save-version", "   ")
        assert result.exit_code == 2
        assert _state(storage).history == []

    def test_restore(self, tmp_path):
        storage = tmp_path / "state.json"
        _add_method(storage, "kept")
        _invoke(storage, "save-version", "one method")
        entry_id = _state(storage).history[0].id
        _add_method(storage, "extra")

        result = _invoke(storage, "restore", entry_id)
        assert result.exit_code == 0
        state = _state(storage)
        assert [m.name for m in state.document.methods] == ["kept"]
        assert len(state.history) == 2
        assert state.history[0].description == "automatic backup before restore"
        assert state.current_method_id is None

    def test_restore_unknown(self, tmp_path):
        result = _invoke(tmp_path / "state.json", "restore", "missing")
        assert result.exit_code == 1
        assert "No saved version" in result.output

    def test_clear_history(self, tmp_path):
        storage = tmp_path / "state.json"
        _invoke(storage, "save-version", "one")
        assert _invoke(storage, "clear-history", "--yes").exit_code == 0
        assert _state(storage).history == []
        assert _state(storage).document is not None


class TestCliImportExport:
    def test_import(self, tmp_path):
        storage = tmp_path / "state.json"
        result = _invoke(storage, "import", str(FIXTURES / "document.json"))
        assert result.exit_code == 0
        doc = _state(storage).document
        assert doc.resource_name == "Customer"
        assert len(doc.methods) == 2

    def test_import_missing_methods_keeps_document(self, tmp_path):
        storage = tmp_path / "state.json"
        _invoke(storage, "set-header", "--name", "Before")
        result = _invoke(storage, "import", str(FIXTURES / "missing_methods.json"))
        assert result.exit_code == 1
        assert "Invalid document file" in result.output
        assert _state(storage).document.resource_name == "Before"

    def test_export_json(self, tmp_path):
        storage = tmp_path / "state.json"
        _invoke(storage, "import", str(FIXTURES / "document.json"))
        output = tmp_path / "out" / "customer.json"
        result = _invoke(storage, "export-json", "-o", str(output))
        assert result.exit_code == 0
        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["nomeRecurso"] == "Customer"
        assert [m["nome"] for m in data["metodos"]] == ["getCustomer", "deleteCustomer"]

    def test_export_md(self, tmp_path):
        storage = tmp_path / "state.json"
        _invoke(storage, "import", str(FIXTURES / "document.json"))
        output = tmp_path / "customer.md"
        result = _invoke(storage, "export-md", "-o", str(output))
        assert result.exit_code == 0
        assert output.read_text(encoding="utf-8").startswith("# CustomerRsrc")


class TestCliPreferences:
    def test_toggle_dark_mode(self, tmp_path):
        storage = tmp_path / "state.json"
        assert "on" in _invoke(storage, "toggle-dark-mode").output
        assert _state(storage).dark_mode is True
        assert "off" in _invoke(storage, "toggle-dark-mode").output
        assert _state(storage).dark_mode is False
