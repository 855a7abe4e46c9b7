import pytest

from conformance_harness.errors import FixtureError
from conformance_harness.models import (
    Category,
    ExecutionResult,
    Incident,
    dump_rulesets,
    load_rulesets,
    parse_rulesets,
)

OUTPUT_YAML = """\
- name: cloud-readiness
  description: Cloud readiness rules
  tags:
  - Java
  violations:
    local-storage-00001:
      description: File system usage
      category: Mandatory
      labels:
      - konveyor.io/target=cloud-readiness
      incidents:
      - uri: file:///source/src/My%20File.java
        message: Avoid local storage
        codeSnip: "12  new File(path);"
        lineNumber: 12
        variables:
          name: File
      links:
      - url: https://example.com
        title: Storage
      effort: 3
  insights:
    java-version:
      description: Java version
  errors:
    broken: failed to parse
  unmatched:
  - unmatched-00001
  skipped:
  - skipped-00001
"""


def test_parse_analyzer_output():
    (ruleset,) = parse_rulesets(OUTPUT_YAML)

    assert ruleset.name == "cloud-readiness"
    assert ruleset.tags == ["Java"]
    violation = ruleset.violations["local-storage-00001"]
    assert violation.category is Category.MANDATORY
    assert violation.effort == 3
    assert violation.links[0].title == "Storage"
    incident = violation.incidents[0]
    assert incident.code_snip == "12  new File(path);"
    assert incident.line_number == 12
    assert incident.variables == {"name": "File"}
    assert incident.filename == "/source/src/My File.java"
    assert ruleset.insights["java-version"].category is None
    assert ruleset.errors == {"broken": "failed to parse"}
    assert ruleset.unmatched == ["unmatched-00001"]
    assert ruleset.skipped == ["skipped-00001"]


def test_dump_uses_analyzer_keys():
    dumped = dump_rulesets(parse_rulesets(OUTPUT_YAML))

    assert "codeSnip:" in dumped
    assert "lineNumber: 12" in dumped
    assert "category: mandatory" in dumped
    assert parse_rulesets(dumped) == parse_rulesets(OUTPUT_YAML)


def test_incident_filename_for_non_file_uris():
    assert Incident().filename == ""
    assert Incident(uri="relative/A.java").filename == "relative/A.java"


@pytest.mark.parametrize(
    "text",
    [
        "name: single\n",
        "- description: no name\n",
        "- name: r\n  violations: [a, b]\n",
        "- name: r\n  violations:\n    rule:\n      category: severe\n",
        "- [unclosed\n",
    ],
)
def test_malformed_documents_raise_fixture_error(text):
    with pytest.raises(FixtureError):
        parse_rulesets(text)


def test_empty_document_is_empty_list():
    assert parse_rulesets("") == []


def test_load_rulesets_missing_file(tmp_path):
    with pytest.raises(FixtureError, match="not found"):
        load_rulesets(tmp_path / "expected-output.yaml")


def test_execution_result_success_flag():
    assert ExecutionResult().succeeded
    assert not ExecutionResult(exit_code=1).succeeded
