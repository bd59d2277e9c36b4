import io

from rich.console import Console

from routedoc.config import DocsConfig
from routedoc.domain.models import EndpointRecord, Metadata
from routedoc.orchestrator.pipeline import run_generate
from routedoc.store.yaml_store import EndpointYAMLStore
from routedoc.writing.summary import ConsoleSummaryWriter


def make_console() -> Console:
    return Console(file=io.StringIO(), width=200, color_system=None)


def test_base_url_prefixes_endpoint_urls():
    console = make_console()
    writer = ConsoleSummaryWriter(console=console, title="Shop API", base_url="http://api.test/")
    record = EndpointRecord(http_methods=["GET"], uri="/users", metadata=Metadata(group_name="Users"))

    writer.write_docs([record])

    out = console.file.getvalue()
    assert "Base URL: http://api.test" in out
    assert "http://api.test/users" in out
    assert writer.url_for(record) == "http://api.test/users"


def test_without_base_url_uri_is_printed_as_is():
    console = make_console()
    writer = ConsoleSummaryWriter(console=console)
    writer.write_docs([EndpointRecord(http_methods=["GET"], uri="/users")], force=True)

    out = console.file.getvalue()
    assert "Base URL" not in out
    assert "force" in out
    assert "/users" in out


def test_default_writer_uses_configured_base_url(tmp_path, capsys):
    directory = tmp_path / ".endpoints"
    EndpointYAMLStore(directory).persist([EndpointRecord(http_methods=["GET"], uri="/ping")])
    config = DocsConfig(intermediate_dir=str(directory), base_url="https://example.org")

    run_generate(config, no_extraction=True)

    assert "Base URL: https://example.org" in capsys.readouterr().out
