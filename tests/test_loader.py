"""
Tests loader — parse des sources, fusion (fichiers puis posts), enregistrement,
hand-off éditeur.
"""
import sys, os, json
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from pathlib import Path

import pytest

from blocklab import database
from blocklab.config import Settings
from blocklab.database import init_db, SessionLocal, db_upsert_block_post
from blocklab.loader import Loader, load_blocks, parse_block_source, serialize_blocks
from blocklab.models import BlockDefinition, PostStatus
from blocklab.output import OutputValueFilter
from blocklab.templates import TemplateRenderer, locate_block_files, locate_template


# ── Helpers ───────────────────────────────────────────────────────────────

def write_json(path: Path, data) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(data if isinstance(data, str) else json.dumps(data), encoding="utf-8")
    return path


def block(name, **fields):
    return {"name": name, "fields": fields}


@pytest.fixture
def db_url(tmp_path):
    url = f"sqlite:///{tmp_path / 'test.db'}"
    init_db(url)
    return url


# ── parse_block_source ────────────────────────────────────────────────────

class TestParseBlockSource:
    def test_valid_document(self):
        data = parse_block_source(json.dumps({"hero": block("hero", title={"type": "string"})}))
        assert isinstance(data["hero"], BlockDefinition)
        assert data["hero"].fields["title"].type == "string"

    def test_invalid_json_returns_none(self):
        assert parse_block_source("{not json") is None

    def test_empty_text_returns_none(self):
        assert parse_block_source("") is None
        assert parse_block_source(None) is None

    def test_wrong_structure_returns_none(self):
        assert parse_block_source(json.dumps(["hero"])) is None
        assert parse_block_source(json.dumps({"hero": "pas un bloc"})) is None

    def test_block_without_name_returns_none(self):
        assert parse_block_source(json.dumps({"hero": {"fields": {}}})) is None

    def test_block_without_fields_accepted(self):
        data = parse_block_source(json.dumps({"hero": {"name": "hero"}}))
        assert data["hero"].fields == {}

    def test_empty_fields_list_accepted(self):
        data = parse_block_source(json.dumps({
            "hero": {"name": "hero", "fields": []},
            "cta":  block("cta", label={"type": "string"}),
        }))
        assert data["hero"].fields == {}
        assert data["cta"].fields["label"].type == "string"


# ── load_blocks ───────────────────────────────────────────────────────────

class TestLoadBlocks:
    def test_later_file_overrides_earlier(self, tmp_path):
        a = write_json(tmp_path / "a.json", {"hero": block("hero-a"), "faq": block("faq-a")})
        b = write_json(tmp_path / "b.json", {"hero": block("hero-b")})
        catalog = load_blocks([a, b])
        assert catalog.blocks["hero"].name == "hero-b"
        assert catalog.blocks["faq"].name == "faq-a"

    def test_posts_override_files(self, tmp_path):
        a = write_json(tmp_path / "a.json", {"hero": block("hero-a")})
        b = write_json(tmp_path / "b.json", {"hero": block("hero-b"), "cta": block("cta-b")})
        c = json.dumps({"hero": block("hero-c")})
        catalog = load_blocks([a, b], [c])
        assert catalog.blocks["hero"].name == "hero-c"
        assert catalog.blocks["cta"].name == "cta-b"

    def test_whole_block_replaced(self, tmp_path):
        a = write_json(tmp_path / "a.json", {"hero": block("hero", title={}, subtitle={})})
        c = json.dumps({"hero": block("hero", title={"type": "number"})})
        catalog = load_blocks([a], [c])
        assert list(catalog.blocks["hero"].fields) == ["title"]

    def test_invalid_file_skipped(self, tmp_path):
        valid   = write_json(tmp_path / "valid.json", {"hero": block("hero")})
        invalid = write_json(tmp_path / "invalid.json", '{"cta": {"name": "cta"')
        catalog = load_blocks([valid, invalid])
        assert list(catalog.blocks) == ["hero"]

    def test_non_utf8_file_skipped(self, tmp_path):
        valid = write_json(tmp_path / "valid.json", {"hero": block("hero")})
        latin = tmp_path / "latin1.json"
        latin.write_bytes('{"cta": {"name": "café"}}'.encode("latin-1"))
        catalog = load_blocks([valid, latin])
        assert list(catalog.blocks) == ["hero"]

    def test_invalid_post_skipped(self, tmp_path):
        valid = write_json(tmp_path / "valid.json", {"hero": block("hero")})
        catalog = load_blocks([valid], ["garbage", json.dumps({"cta": block("cta")})])
        assert set(catalog.blocks) == {"hero", "cta"}

    def test_missing_file_skipped(self, tmp_path):
        valid = write_json(tmp_path / "valid.json", {"hero": block("hero")})
        catalog = load_blocks([tmp_path / "absent.json", valid])
        assert list(catalog.blocks) == ["hero"]

    def test_no_sources(self):
        catalog = load_blocks([])
        assert catalog.blocks == {}
        assert catalog.json == "{}"

    def test_json_keeps_source_keys(self, tmp_path):
        src = {"hero": {"name": "hero", "title": "Hero", "category": "common",
                        "fields": {"title": {"name": "title", "control": "text", "label": "Titre"}}}}
        catalog = load_blocks([write_json(tmp_path / "a.json", src)])
        assert json.loads(catalog.json) == src

    def test_serialize_blocks_non_ascii(self):
        data = parse_block_source(json.dumps({"hero": block("Héros")}))
        assert "Héros" in serialize_blocks(data)


# ── locate ────────────────────────────────────────────────────────────────

class TestLocate:
    def test_block_files_lowest_precedence_first(self, tmp_path):
        child  = write_json(tmp_path / "child" / "blocks" / "blocks.json", {})
        parent = write_json(tmp_path / "parent" / "blocks" / "blocks.json", {})
        files = locate_block_files([tmp_path / "child", tmp_path / "parent"])
        assert files == [parent, child]

    def test_same_dir_twice_deduplicated(self, tmp_path):
        write_json(tmp_path / "theme" / "blocks" / "blocks.json", {})
        files = locate_block_files([tmp_path / "theme", tmp_path / "theme"])
        assert len(files) == 1

    def test_single_returns_first_hit(self, tmp_path):
        write_json(tmp_path / "parent" / "blocks" / "block-x.html", "p")
        found = locate_template(["blocks/preview-x.html", "blocks/block-x.html"],
                                [tmp_path / "child", tmp_path / "parent"])
        assert found == tmp_path / "parent" / "blocks" / "block-x.html"

    def test_single_not_found(self, tmp_path):
        assert locate_template("blocks/blocks.json", [tmp_path]) is None


# ── Loader ────────────────────────────────────────────────────────────────

class TestLoader:
    def _settings(self, tmp_path, **kw):
        return Settings(db_path=str(tmp_path / "test.db"),
                        template_dirs=[tmp_path / "child", tmp_path / "parent"],
                        assets_url="https://cdn.test/block-lab", version="1.2.3", **kw)

    def test_theme_and_posts_merged(self, tmp_path, db_url):
        write_json(tmp_path / "parent" / "blocks" / "blocks.json",
                   {"hero": block("hero-parent"), "faq": block("faq-parent"), "cta": block("cta-parent")})
        write_json(tmp_path / "child" / "blocks" / "blocks.json",
                   {"hero": block("hero-child"), "faq": block("faq-child")})
        with SessionLocal() as db:
            db_upsert_block_post(db, "p1", json.dumps({"hero": block("hero-post")}))
            db_upsert_block_post(db, "p2", json.dumps({"cta": block("cta-draft")}), PostStatus.DRAFT.value)
            db_upsert_block_post(db, "p3", "{broken")

        loader = Loader(self._settings(tmp_path)).init()
        blocks = loader.catalog.blocks
        assert blocks["hero"].name == "hero-post"
        assert blocks["faq"].name == "faq-child"
        assert blocks["cta"].name == "cta-parent"

    def test_registration(self, tmp_path, db_url):
        write_json(tmp_path / "parent" / "blocks" / "blocks.json", {
            "my_block":  block("my_block", color={"default": "red"}),
            "1existing": block("1existing"),
        })
        loader = Loader(self._settings(tmp_path)).init()
        assert set(loader.registry) == {"my-block", "block-1existing"}
        assert loader.registry.get("my-block").attributes == {"color": {"type": "string", "default": "red"}}

    def test_registered_render_ignores_later_map_changes(self, tmp_path, db_url):
        write_json(tmp_path / "parent" / "blocks" / "blocks.json",
                   {"hero": block("hero", color={"default": "red"})})
        loader = Loader(self._settings(tmp_path)).init()
        callback = loader.registry.get("hero").render_callback

        loader.catalog.blocks["hero"] = BlockDefinition(name="other")
        assert callback.block.name == "hero"
        assert callback.block.fields["color"].default == "red"

    def test_reload_drops_removed_blocks(self, tmp_path, db_url):
        path = write_json(tmp_path / "parent" / "blocks" / "blocks.json",
                          {"hero": block("hero"), "faq": block("faq")})
        loader = Loader(self._settings(tmp_path)).init()
        write_json(path, {"hero": block("hero")})
        loader.reload()
        assert list(loader.registry) == ["hero"]

    def test_reload_keeps_registry_on_failure(self, tmp_path, db_url, monkeypatch):
        write_json(tmp_path / "parent" / "blocks" / "blocks.json", {"hero": block("hero")})
        loader = Loader(self._settings(tmp_path)).init()
        registry = loader.registry

        def db_down():
            raise RuntimeError("database unavailable")
        monkeypatch.setattr(loader, "_published_posts", db_down)

        with pytest.raises(RuntimeError):
            loader.reload()
        assert loader.registry is registry
        assert list(loader.registry) == ["hero"]
        assert "hero" in loader.catalog.blocks

    def test_init_without_database(self, tmp_path, monkeypatch):
        monkeypatch.setattr(database, "ENGINE", None)
        write_json(tmp_path / "parent" / "blocks" / "blocks.json", {"hero": block("hero")})
        settings = self._settings(tmp_path).model_copy(
            update={"db_path": str(tmp_path / "data" / "blocklab.db")})

        loader = Loader(settings).init()
        assert database.ENGINE is not None
        assert (tmp_path / "data" / "blocklab.db").exists()
        assert list(loader.registry) == ["hero"]

    def test_injected_renderer_shares_output_filter(self, tmp_path, db_url):
        output_filter = OutputValueFilter()
        output_filter.register("upper", lambda value, echo: value.upper())
        renderer = TemplateRenderer(self._settings(tmp_path).template_dirs, output_filter)

        loader = Loader(self._settings(tmp_path), templates=renderer)
        assert loader.output_filter is renderer.output_filter
        assert loader.get_output_value("abc", "upper", True) == "ABC"
        assert "user" in renderer.output_filter
        assert renderer.output_filter.resolve("nobody", "user", True) == ""

    def test_editor_assets(self, tmp_path, db_url):
        write_json(tmp_path / "parent" / "blocks" / "blocks.json", {"hero": block("hero")})
        loader = Loader(self._settings(tmp_path)).init()
        assets = loader.editor_assets()
        assert assets["script"]["src"] == "https://cdn.test/block-lab/js/editor.blocks.js"
        assert assets["style"]["src"] == "https://cdn.test/block-lab/css/blocks.editor.css"
        assert assets["script"]["version"] == "1.2.3"
        assert "wp-blocks" in assets["script"]["deps"]
        assert assets["inline_script"] == "const blockLabBlocks = " + loader.blocks
        assert json.loads(loader.blocks) == {"hero": {"name": "hero", "fields": {}}}


# ── Thème fourni ──────────────────────────────────────────────────────────

THEME_DIR = Path(__file__).parent.parent / "theme"


class TestBundledTheme:
    def test_bundled_blocks_json_valid(self):
        path = THEME_DIR / "blocks" / "blocks.json"
        assert path.exists(), "theme/blocks/blocks.json introuvable"
        assert parse_block_source(path.read_text(encoding="utf-8")) is not None

    def test_bundled_testimonial_renders(self, tmp_path, db_url):
        loader = Loader(Settings(db_path=str(tmp_path / "test.db"), template_dirs=[THEME_DIR])).init()
        html = loader.registry.get("testimonial").render({})
        assert "This product changed how our team works." in html
        assert "fast" in html
        assert "figcaption" not in html
