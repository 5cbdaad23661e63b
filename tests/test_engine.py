import pytest

from fluxvalidator.core.engine import ScanEngine
from fluxvalidator.core.errors import ConfigurationError, DiscoveryError, ParseError
from fluxvalidator.core.models import Document, Encryption, Metadata, ScanMode

KEY = "arn:aws:kms:1"
NEW = "arn:aws:kms:new"


class RewritingTool:
    """Acts like sops on the test fixtures: swaps the ARN in the file on encrypt."""

    def __init__(self, old):
        self.old = old
        self.calls = []

    def decrypt_in_place(self, path):
        self.calls.append(("decrypt", path))

    def encrypt_in_place(self, path, key_identifier):
        self.calls.append(("encrypt", path))
        path.write_text(path.read_text().replace(self.old, key_identifier))


def test_reference_scenario(write_manifest, render, fake_tool):
    a = write_manifest("a-sops.yml", render(arn=KEY), render(arn=KEY))
    b = write_manifest("b-sops.yml", render(arn=KEY))

    report = ScanEngine(tool=fake_tool).run([a, b])

    assert report.key_usage == {KEY: frozenset({a, b})}
    (doc,) = report.duplicates
    assert doc.identity == ("Deployment", "web", "prod", KEY)
    assert report.duplicates[doc] == {a, b}
    assert report.rotation is None
    assert report.files_scanned == 2
    assert fake_tool.calls == []


def test_single_file_groups_never_reported(write_manifest, render):
    a = write_manifest("a-sops.yml", render(), render(name="only-here"))
    b = write_manifest("b-sops.yml", render(), render(kind="Service", name="svc"))
    c = write_manifest("c-sops.yml", render(kind="Service", name="svc"))

    report = ScanEngine().run([a, b, c])

    assert report.duplicates == {
        Document("Deployment", Metadata("web", "prod")): frozenset({a, b}),
        Document("Service", Metadata("svc", "prod")): frozenset({b, c}),
    }


def test_scan_is_idempotent(write_manifest, render):
    paths = [
        write_manifest("a-sops.yml", render(arn=KEY), render(name="api")),
        write_manifest("b-sops.yml", render(arn=KEY)),
        write_manifest("nested/c-sops.yml", render(name="api"), render(name="db", arn="arn:aws:kms:2")),
    ]
    engine = ScanEngine()

    assert engine.run(paths) == engine.run(paths)


def test_rotation_without_key_fails_before_io(tmp_path, fake_tool):
    missing = tmp_path / "never-read-sops.yml"

    with pytest.raises(ConfigurationError):
        ScanEngine(tool=fake_tool).run([missing], mode=ScanMode.ROTATE, target_key=None)
    with pytest.raises(ConfigurationError):
        ScanEngine(tool=fake_tool).scan_directory(tmp_path / "nope", mode="scan+rotate", target_key="")
    assert fake_tool.calls == []


def test_rotation_once_per_file(write_manifest, render, fake_tool):
    a = write_manifest("a-sops.yml", render(arn=KEY), render(name="api", arn=KEY))
    plain = write_manifest("plain-sops.yml", render(name="cfg"))

    report = ScanEngine(tool=fake_tool).run([a, plain], mode=ScanMode.ROTATE, target_key=NEW)

    assert fake_tool.count("decrypt", a) == 1
    assert fake_tool.count("encrypt", a) == 1
    assert report.rotation.rotated == {a}
    assert report.ok


def test_key_usage_reflects_keys_before_rotation(write_manifest, render):
    a = write_manifest("a-sops.yml", render(arn=KEY))
    tool = RewritingTool(old=KEY)
    engine = ScanEngine(tool=tool)

    rotated = engine.run([a], mode=ScanMode.ROTATE, target_key=NEW)
    after = engine.run([a])

    assert rotated.key_usage == {KEY: frozenset({a})}
    assert after.key_usage == {NEW: frozenset({a})}


def test_rotation_failures_mark_report_not_ok(write_manifest, render, tool_factory):
    a = write_manifest("a-sops.yml", render(arn=KEY))
    b = write_manifest("b-sops.yml", render(name="api", arn=KEY))
    tool = tool_factory(fail_encrypt=[a])

    report = ScanEngine(tool=tool).run([a, b], mode=ScanMode.ROTATE, target_key=NEW)

    assert not report.ok
    assert [e.path for e in report.rotation.failures] == [a]
    assert report.rotation.rotated == {b}


def test_parse_error_aborts_run_by_default(write_manifest, render, fake_tool):
    good = write_manifest("good-sops.yml", render(arn=KEY))
    bad = write_manifest("bad-sops.yml", render(name=None))

    with pytest.raises(ParseError) as exc:
        ScanEngine(tool=fake_tool).run([good, bad], mode=ScanMode.ROTATE, target_key=NEW)

    assert exc.value.path == bad
    # Rotation never starts when the read-only passes fail
    assert fake_tool.calls == []


def test_skip_invalid_reports_each_bad_file_once(write_manifest, render):
    good = write_manifest("good-sops.yml", render(arn=KEY))
    twin = write_manifest("twin-sops.yml", render(arn=KEY))
    bad = write_manifest("bad-sops.yml", render(arn=KEY), render(name=None))

    report = ScanEngine(skip_invalid=True).run([good, bad, twin])

    assert report.key_usage == {KEY: frozenset({good, twin})}
    assert [w.path for w in report.warnings] == [bad]
    assert report.files_scanned == 2
    assert Document("Deployment", Metadata("web", "prod"), Encryption(KEY)) in report.duplicates


def test_scan_directory(tmp_path, write_manifest, render):
    a = write_manifest("apps/a-sops.yml", render(arn=KEY))
    b = write_manifest("infra/b-sops.yml", render(arn=KEY))
    write_manifest("apps/ignored.yml", render(arn="arn:aws:kms:other"))

    report = ScanEngine().scan_directory(tmp_path)

    assert report.key_usage == {KEY: frozenset({a, b})}
    assert report.files_scanned == 2


def test_scan_directory_missing_root(tmp_path):
    with pytest.raises(DiscoveryError):
        ScanEngine().scan_directory(tmp_path / "missing")


@pytest.mark.parametrize("entry", ["run", "scan_directory"])
def test_unknown_mode_is_a_configuration_error(tmp_path, fake_tool, entry):
    engine = ScanEngine(tool=fake_tool)

    with pytest.raises(ConfigurationError) as exc:
        if entry == "run":
            engine.run([tmp_path / "never-read-sops.yml"], mode="bogus")
        else:
            engine.scan_directory(tmp_path, mode="bogus")
    assert "bogus" in str(exc.value)
    assert fake_tool.calls == []
