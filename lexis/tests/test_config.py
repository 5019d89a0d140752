import pytest

from lexis.utils.config import DEFAULT_CONFIG, RESOURCE_DIR_ENV, load_config


@pytest.fixture(autouse=True)
def no_resource_env(monkeypatch):
    monkeypatch.delenv(RESOURCE_DIR_ENV, raising=False)


class TestLoadConfig:
    def test_defaults(self):
        config = load_config()
        assert config["analysis"]["rarity_threshold"] == 5e-5
        assert config["analysis"]["batch_size"] == 32
        assert config["runtime"]["threads"] is None
        assert config["resources"]["dir"].endswith("resources")

    def test_defaults_not_mutated(self):
        load_config(overrides={"analysis": {"batch_size": 8}})
        assert DEFAULT_CONFIG["analysis"]["batch_size"] == 32

    def test_yaml_file_merges_over_defaults(self, tmp_path):
        path = tmp_path / "lexis.yaml"
        path.write_text(
            "analysis:\n"
            "  rarity_threshold: 1e-6\n"
            "  batch_size: 16\n"
            "runtime:\n"
            "  threads: 2\n"
        )
        config = load_config(path)
        assert config["analysis"]["rarity_threshold"] == 1e-6
        assert config["analysis"]["batch_size"] == 16
        assert config["analysis"]["entity_threshold"] == 0.5
        assert config["runtime"]["threads"] == 2

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "lexis.yaml"
        path.write_text("resources:\n  dir: /from/file\n")
        monkeypatch.setenv(RESOURCE_DIR_ENV, str(tmp_path / "env"))
        assert load_config(path)["resources"]["dir"] == str(tmp_path / "env")

    def test_overrides_win(self, tmp_path, monkeypatch):
        monkeypatch.setenv(RESOURCE_DIR_ENV, str(tmp_path / "env"))
        config = load_config(overrides={"resources": {"dir": str(tmp_path / "explicit")}})
        assert config["resources"]["dir"] == str(tmp_path / "explicit")

    def test_user_dir_expanded(self):
        config = load_config(overrides={"resources": {"dir": "~/lexis-res"}})
        assert not config["resources"]["dir"].startswith("~")


class TestValidation:
    @pytest.mark.parametrize("overrides", [
        {"analysis": {"rarity_threshold": 0}},
        {"analysis": {"rarity_threshold": -1e-5}},
        {"analysis": {"batch_size": 0}},
        {"analysis": {"batch_size": 2.5}},
        {"analysis": {"entity_labels": []}},
        {"runtime": {"threads": 0}},
        {"analysis": {"segmentation_max_edit_distance": -1}},
    ])
    def test_invalid_values(self, overrides):
        with pytest.raises(ValueError):
            load_config(overrides=overrides)

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "lexis.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ValueError):
            load_config(path)
