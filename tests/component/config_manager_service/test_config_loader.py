import pytest

from services.config_manager_service.src.config_loader import ConfigLoader
from services.config_manager_service.src.custom_response import CustomResponsePage
from services.config_manager_service.src.validator import DocumentParseError


def test_read_document(write_config):
    path = write_config({"block.status_code": 403, "hook.white": {"sql": ["sqli"]}})
    document = ConfigLoader(path).read()
    assert document == {"block.status_code": 403, "hook.white": {"sql": ["sqli"]}}


def test_empty_document(config_file):
    config_file.write_text("")
    assert ConfigLoader(config_file).read() == {}


def test_missing_document(config_file):
    loader = ConfigLoader(config_file)
    with pytest.raises(FileNotFoundError):
        loader.read()
    assert loader.load() is None


def test_malformed_document(config_file):
    config_file.write_text("block.status_code: [unclosed\n")
    loader = ConfigLoader(config_file)
    with pytest.raises(DocumentParseError):
        loader.read()
    assert loader.load() is None


def test_document_must_be_a_mapping(config_file):
    config_file.write_text("- a\n- b\n")
    with pytest.raises(DocumentParseError):
        ConfigLoader(config_file).read()


def test_custom_response_page(tmp_path):
    page = CustomResponsePage(tmp_path / "assets")
    assert page.load() is None

    (tmp_path / "assets").mkdir()
    page.path.write_text("<p>blocked</p>")
    assert page.load() == "<p>blocked</p>"
    assert page.content == "<p>blocked</p>"

    page.path.unlink()
    assert page.load() is None
