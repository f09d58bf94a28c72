from __future__ import annotations

import types
import unittest
from unittest import mock

from templatemorph.morpher import Morpher
from templatemorph.parser import Availability, HTMLCapability

_MISSING = "templatemorph_tests_no_such_parser"


class _RecordingDocument:
    calls: list[tuple[str, dict]] = []

    def __init__(self, html: str, **kwargs) -> None:
        type(self).calls.append((html, kwargs))
        self.root = ("root", html)


class _Context:
    def __init__(self, name: str) -> None:
        self.name = name


def _fake_import(name: str):
    if name == "fakeparser":
        return types.SimpleNamespace(JustHTML=_RecordingDocument)
    if name == "fakeparser.context":
        return types.SimpleNamespace(FragmentContext=_Context)
    raise ImportError(name)


class TestHTMLCapability(unittest.TestCase):
    def setUp(self) -> None:
        _RecordingDocument.calls = []

    def test_starts_unknown(self) -> None:
        assert HTMLCapability().availability is Availability.UNKNOWN

    def test_missing_module_marks_unavailable_and_warns_once(self) -> None:
        capability = HTMLCapability(module=_MISSING)
        with self.assertLogs("templatemorph.parser", level="WARNING") as logs:
            assert capability.probe() is Availability.UNAVAILABLE
        assert len(logs.output) == 1
        assert _MISSING in logs.output[0]

        with self.assertNoLogs("templatemorph.parser", level="WARNING"):
            assert capability.probe() is Availability.UNAVAILABLE
            assert capability.parse("<div if='x'></div>") is None

    def test_failed_probe_is_never_retried(self) -> None:
        capability = HTMLCapability(module=_MISSING)
        with self.assertLogs("templatemorph.parser", level="WARNING"):
            capability.probe()
        with mock.patch("templatemorph.parser.importlib.import_module") as import_module:
            for template in ('<a if="1">x</a>', '<b times="2">y</b>'):
                assert capability.parse(template) is None
        import_module.assert_not_called()

    def test_injected_unavailable_never_imports(self) -> None:
        capability = HTMLCapability(availability=Availability.UNAVAILABLE)
        with mock.patch("templatemorph.parser.importlib.import_module") as import_module:
            assert capability.probe() is Availability.UNAVAILABLE
            assert capability.parse("<p if='x'></p>") is None
        import_module.assert_not_called()

    def test_parse_builds_fragment_document(self) -> None:
        capability = HTMLCapability(module="fakeparser", fragment_context="template")
        with mock.patch("templatemorph.parser.importlib.import_module", side_effect=_fake_import) as import_module:
            assert capability.parse("<p>x</p>") == ("root", "<p>x</p>")
            assert capability.parse("<p>y</p>") == ("root", "<p>y</p>")
        assert capability.availability is Availability.AVAILABLE
        assert import_module.call_count == 2

        html, kwargs = _RecordingDocument.calls[0]
        assert html == "<p>x</p>"
        assert kwargs["fragment_context"].name == "template"
        assert kwargs["sanitize"] is False
        assert kwargs["track_node_locations"] is True

    def test_incompatible_parser_layout_is_not_treated_as_missing(self) -> None:
        def without_context(name: str):
            if name == "fakeparser":
                return types.SimpleNamespace(JustHTML=_RecordingDocument)
            raise ModuleNotFoundError(f"No module named {name!r}", name=name)

        capability = HTMLCapability(module="fakeparser")
        with mock.patch("templatemorph.parser.importlib.import_module", side_effect=without_context):
            with self.assertRaises(ModuleNotFoundError):
                capability.parse("<p if='x'></p>")
        assert capability.availability is Availability.UNKNOWN

    def test_broken_parser_dependency_propagates(self) -> None:
        def broken(name: str):
            raise ModuleNotFoundError("No module named 'somedep'", name="somedep")

        capability = HTMLCapability(module="fakeparser")
        with mock.patch("templatemorph.parser.importlib.import_module", side_effect=broken):
            with self.assertRaises(ModuleNotFoundError):
                capability.probe()
        assert capability.availability is Availability.UNKNOWN


class TestMorpherFallbackStability(unittest.TestCase):
    def test_every_call_after_failure_is_identity(self) -> None:
        morpher = Morpher(capability=HTMLCapability(module=_MISSING))
        templates = ['<div if="@a">x</div>', '<ul each="@xs"><li>#{_e}</li></ul>', '<p for="x in y">#{x}</p>']
        with self.assertLogs("templatemorph.parser", level="WARNING") as logs:
            results = [morpher.transform(t) for t in templates]
        assert results == templates
        assert len(logs.output) == 1
        assert morpher.availability is Availability.UNAVAILABLE
