"""Tests for prerender.pipeline — render orchestration over a fake document."""

import logging
from pathlib import Path

import pytest
from conftest import BUNDLE_CODE, SHELL, FakeDocument, FakeDocuments

from prerender.bundler import AssetBundleSource, BootstrapScript
from prerender.config import INLINE_SHELL, RenderConfig
from prerender.errors import BundleError, PrerenderError, RenderTimeoutError
from prerender.pipeline import RenderPipeline, ShellSource, loader_script


class StaticBundles:
    def __init__(self, code: str | None) -> None:
        self.code = code
        self.loads = 0

    async def load(self) -> BootstrapScript | None:
        self.loads += 1
        if self.code is None:
            return None
        return BootstrapScript(code=self.code, origin="test")


class FailingBundles:
    async def load(self) -> BootstrapScript:
        raise BundleError("src/main.ts", "Could not resolve \"./missing\"")


def make_pipeline(
    documents: FakeDocuments,
    bundles: object,
    *,
    shell: ShellSource | None = None,
    **kwargs: object,
) -> RenderPipeline:
    return RenderPipeline(
        documents=documents,
        bundles=bundles,  # type: ignore[arg-type]
        shell=shell or ShellSource(),
        **kwargs,  # type: ignore[arg-type]
    )


class TestLoaderScript:
    def test_references_source_exactly(self) -> None:
        code = loader_script("/assets/app.js")
        assert '"/assets/app.js"' in code
        assert 'appScript.type = "module"' in code
        assert "DOMContentLoaded" in code

    def test_clears_body_before_reloading(self) -> None:
        code = loader_script("/assets/app.js")
        assert code.index('document.body.innerHTML = ""') < code.index(
            "document.head.appendChild(appScript)"
        )

    def test_escapes_closing_script_sequence(self) -> None:
        code = loader_script("/x</script><script>alert(1)//")
        assert "</script>" not in code


class TestShellSource:
    def test_inline_template_by_default(self) -> None:
        assert ShellSource().load() == INLINE_SHELL

    def test_reads_file(self, tmp_path: Path) -> None:
        shell = tmp_path / "index.html"
        shell.write_text("<html><body>shell</body></html>")
        assert ShellSource(shell).load() == "<html><body>shell</body></html>"

    def test_missing_file_is_prerender_error(self, tmp_path: Path) -> None:
        with pytest.raises(PrerenderError, match="Shell file not found"):
            ShellSource(tmp_path / "nope.html").load()


class TestRender:
    async def test_app_markup_and_loader(self, fake_documents: FakeDocuments) -> None:
        pipeline = make_pipeline(fake_documents, StaticBundles(BUNDLE_CODE))

        html = await pipeline.render("/")

        assert '<div id="app">hi</div>' in html
        assert '"/assets/app.js"' in html
        assert "appScript.src" in html
        assert BUNDLE_CODE not in html
        assert '<script src="/assets/app.js"' not in html

    async def test_bootstrap_uses_configured_type(self, fake_documents: FakeDocuments) -> None:
        pipeline = make_pipeline(
            fake_documents, StaticBundles(BUNDLE_CODE), bootstrap_type="text/javascript"
        )
        await pipeline.render("/")
        assert fake_documents.opened[0].script_type == "text/javascript"

    async def test_no_app_script_means_no_loader(self) -> None:
        def only_markup(document: FakeDocument) -> None:
            document.body.append("<main>static</main>")

        documents = FakeDocuments({BUNDLE_CODE: only_markup})
        html = await make_pipeline(documents, StaticBundles(BUNDLE_CODE)).render("/")

        assert "<main>static</main>" in html
        assert "DOMContentLoaded" not in html
        assert "<script" not in html

    async def test_app_script_without_src_is_left_alone(self) -> None:
        def inline_script(document: FakeDocument) -> None:
            document.scripts.append(None)

        documents = FakeDocuments({BUNDLE_CODE: inline_script})
        html = await make_pipeline(documents, StaticBundles(BUNDLE_CODE)).render("/")

        assert documents.opened[0].loader is None
        assert "DOMContentLoaded" not in html

    async def test_missing_bundle_returns_shell_untouched(
        self, fake_documents: FakeDocuments
    ) -> None:
        pipeline = make_pipeline(fake_documents, StaticBundles(None))

        html = await pipeline.render("/")

        assert html == INLINE_SHELL
        assert fake_documents.opened == []

    async def test_bundle_error_propagates(self, fake_documents: FakeDocuments) -> None:
        with pytest.raises(BundleError):
            await make_pipeline(fake_documents, FailingBundles()).render("/")
        assert fake_documents.opened == []

    async def test_bundle_error_falls_back_to_shell(
        self, fake_documents: FakeDocuments, caplog: pytest.LogCaptureFixture
    ) -> None:
        pipeline = make_pipeline(fake_documents, FailingBundles(), fallback_to_shell=True)

        with caplog.at_level(logging.ERROR, logger="prerender.render"):
            html = await pipeline.render("/")

        assert html == INLINE_SHELL
        assert "<script" not in html
        assert "Bundle failed" in caplog.text

    async def test_app_error_is_logged_not_fatal(self, caplog: pytest.LogCaptureFixture) -> None:
        def broken(document: FakeDocument) -> None:
            document.body.append("<p>partial</p>")
            raise RuntimeError("window.foo is not a function")

        documents = FakeDocuments({BUNDLE_CODE: broken})
        with caplog.at_level(logging.WARNING, logger="prerender.render"):
            html = await make_pipeline(documents, StaticBundles(BUNDLE_CODE)).render("/")

        assert "<p>partial</p>" in html
        assert "window.foo is not a function" in caplog.text

    async def test_waits_for_readiness(self, fake_documents: FakeDocuments) -> None:
        await make_pipeline(fake_documents, StaticBundles(BUNDLE_CODE)).render("/")
        assert fake_documents.opened[0].ready_calls == 1

    async def test_never_ready_times_out(self, fake_documents: FakeDocuments) -> None:
        fake_documents.hang = True
        pipeline = make_pipeline(fake_documents, StaticBundles(BUNDLE_CODE), render_timeout=0.05)

        with pytest.raises(RenderTimeoutError) as exc_info:
            await pipeline.render("/slow.html")

        assert exc_info.value.path == "/slow.html"
        assert exc_info.value.timeout == 0.05
        assert fake_documents.opened[0].closed

    async def test_each_render_gets_a_fresh_document(self, fake_documents: FakeDocuments) -> None:
        pipeline = make_pipeline(fake_documents, StaticBundles(BUNDLE_CODE))

        first = await pipeline.render("/")
        second = await pipeline.render("/")

        assert first == second
        assert len(fake_documents.opened) == 2
        assert fake_documents.opened[0] is not fake_documents.opened[1]
        assert all(document.closed for document in fake_documents.opened)
        # state from the first render does not accumulate in the second
        assert second.count('<div id="app">hi</div>') == 1

    async def test_document_opened_for_requested_path(self, fake_documents: FakeDocuments) -> None:
        await make_pipeline(fake_documents, StaticBundles(BUNDLE_CODE)).render("/about.html")
        assert fake_documents.opened[0].path == "/about.html"


class TestFromConfig:
    async def test_dist_mode_uses_index_and_built_bundle(
        self, dist_dir: Path, fake_documents: FakeDocuments
    ) -> None:
        pipeline = RenderPipeline.from_config(RenderConfig(dist_dir=dist_dir), fake_documents)

        html = await pipeline.render("/")

        assert html.startswith(SHELL.split("<body>")[0])
        assert '<div id="app">hi</div>' in html
        assert fake_documents.opened[0].shell == SHELL

    async def test_dist_mode_without_bundle_serves_shell(
        self, dist_dir: Path, fake_documents: FakeDocuments
    ) -> None:
        for bundle in (dist_dir / "assets").glob("index-*.js"):
            bundle.unlink()
        pipeline = RenderPipeline.from_config(RenderConfig(dist_dir=dist_dir), fake_documents)

        assert await pipeline.render("/") == SHELL
        assert fake_documents.opened == []

    def test_dist_mode_bundle_source(self, dist_dir: Path, fake_documents: FakeDocuments) -> None:
        pipeline = RenderPipeline.from_config(RenderConfig(dist_dir=dist_dir), fake_documents)
        assert isinstance(pipeline._bundles, AssetBundleSource)
