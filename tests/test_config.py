import logging

import pytest

from component_graph.config import BuildConfig, load_config
from component_graph.errors import DecodeError
from component_graph.executor import PropertyCommand


def test_missing_default_config_gives_defaults(tmp_path):
    config = load_config(tmp_path)
    assert config == BuildConfig()
    assert config.registry_file == "components.json"
    assert config.content_id_width == 20


def test_load_default_location(tmp_path):
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "build_config.yaml").write_text(
        "pretty_print: true\n"
        "max_workers: 8\n"
        "properties:\n"
        "  - name: image\n"
        "    command: echo {{ dir }}\n"
        "  - name: size\n"
        "    command: du -s {{ dir }}\n"
        "    shell: true\n",
        encoding="utf-8",
    )
    config = load_config(tmp_path)
    assert config.pretty_print is True
    assert config.max_workers == 8
    assert config.properties == [
        PropertyCommand("image", "echo {{ dir }}", False),
        PropertyCommand("size", "du -s {{ dir }}", True),
    ]


def test_explicit_config_must_exist(tmp_path):
    with pytest.raises(DecodeError):
        load_config(tmp_path, tmp_path / "nope.yaml")


def test_empty_config_file(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert load_config(tmp_path, path) == BuildConfig()


def test_config_must_be_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(DecodeError):
        load_config(tmp_path, path)


def test_malformed_yaml(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("a: [1, 2\n", encoding="utf-8")
    with pytest.raises(DecodeError):
        load_config(tmp_path, path)


def test_unknown_keys_are_ignored(tmp_path, caplog):
    path = tmp_path / "extra.yaml"
    path.write_text("log_level: DEBUG\ncolour: blue\n", encoding="utf-8")
    with caplog.at_level(logging.WARNING, logger="component_graph.config"):
        config = load_config(tmp_path, path)
    assert config.log_level == "DEBUG"
    assert "colour" in caplog.text


def test_property_entries_need_name_and_command(tmp_path):
    path = tmp_path / "props.yaml"
    path.write_text("properties:\n  - name: image\n", encoding="utf-8")
    with pytest.raises(DecodeError):
        load_config(tmp_path, path)


@pytest.mark.parametrize(
    "line, key",
    [
        ('max_workers: "4"', "max_workers"),
        ("max_workers: 0", "max_workers"),
        ("max_workers: true", "max_workers"),
        ('content_id_width: "32"', "content_id_width"),
        ('pretty_print: "yes"', "pretty_print"),
        ("show_progress: 1", "show_progress"),
        ("env_prefix: 3", "env_prefix"),
        ("registry_file: [a, b]", "registry_file"),
    ],
)
def test_wrongly_typed_values(tmp_path, line, key):
    path = tmp_path / "typed.yaml"
    path.write_text(line + "\n", encoding="utf-8")
    with pytest.raises(DecodeError, match=key):
        load_config(tmp_path, path)


def test_well_typed_values_are_accepted():
    config = BuildConfig.from_dict({"max_workers": 4, "content_id_width": 32, "show_progress": True})
    assert (config.max_workers, config.content_id_width, config.show_progress) == (4, 32, True)
