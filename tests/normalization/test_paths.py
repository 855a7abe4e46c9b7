from conformance_harness.normalization import (
    normalize_hub_path,
    normalize_yaml_paths,
    strip_code_snips,
)


def test_test_dir_and_mount_prefixes_are_rewritten():
    text = "\n".join(
        [
            "- uri: file:///home/ci/tests/t1/source/src/A.java",
            "- uri: file:///opt/input/source/src/B.java",
            "- uri: file:///shared/source/my-repo/src/C.java",
            "- uri: file:///root/.m2/repository/org/D.jar",
            "- uri: file:///cache/m2/repository/org/E.jar",
            "- uri: file:///m2/repository/org/F.jar",
        ]
    )

    normalized = normalize_yaml_paths(text, "/home/ci/tests/t1", "kantra")

    assert normalized.splitlines() == [
        "- uri: file:///source/src/A.java",
        "- uri: file:///source/src/B.java",
        "- uri: file:///source/src/C.java",
        "- uri: file:///m2/org/D.jar",
        "- uri: file:///m2/org/E.jar",
        "- uri: file:///m2/org/F.jar",
    ]


def test_code_snips_kept_for_strict_backends():
    text = "incidents:\n- uri: file:///source/A.java\n  codeSnip: x\n"

    assert normalize_yaml_paths(text, "", "kantra") == text
    assert "codeSnip" not in normalize_yaml_paths(text, "", "tackle-hub")
    assert "codeSnip" not in normalize_yaml_paths(text, "", "tackle-ui")


def test_strip_code_snips_removes_block_continuations():
    text = "\n".join(
        [
            "incidents:",
            "- uri: file:///source/A.java",
            "  message: m",
            "  codeSnip: |2",
            "      1  import java.io.File;",
            "",
            "      2  new File(path);",
            "  lineNumber: 2",
            "- uri: file:///source/B.java",
        ]
    )

    assert strip_code_snips(text).splitlines() == [
        "incidents:",
        "- uri: file:///source/A.java",
        "  message: m",
        "  lineNumber: 2",
        "- uri: file:///source/B.java",
    ]


def test_strip_code_snips_on_list_item_keeps_item_marker():
    text = "\n".join(
        [
            "incidents:",
            "- codeSnip: |",
            "    line",
            "  uri: file:///source/A.java",
            "  message: m",
        ]
    )

    assert strip_code_snips(text).splitlines() == [
        "incidents:",
        "-",
        "  uri: file:///source/A.java",
        "  message: m",
    ]


def test_normalize_hub_path():
    assert normalize_hub_path("/cache/m2/repository/org/x.jar") == "/m2/org/x.jar"
    assert normalize_hub_path("/cache/m2/settings.xml") == "/m2/settings.xml"
    assert normalize_hub_path("/shared/source/app/A.java") == "/shared/source/app/A.java"
