import pytest

from conformance_harness.config import (
    KaiRPCConfig,
    KantraConfig,
    TackleHubConfig,
    TackleUIConfig,
    TargetConfig,
    VSCodeConfig,
)
from conformance_harness.errors import TargetConfigurationError
from conformance_harness.targets import (
    KaiRPCTarget,
    KantraTarget,
    TackleHubTarget,
    TackleUITarget,
    VSCodeTarget,
    new_target,
)


def test_kantra_target_from_explicit_binary():
    target = new_target(TargetConfig(type="kantra", kantra=KantraConfig(binary_path="/opt/kantra")))

    assert isinstance(target, KantraTarget)
    assert target.binary_path == "/opt/kantra"


def test_hub_and_ui_targets():
    hub = new_target(TargetConfig(type="tackle-hub", tackle_hub=TackleHubConfig(url="http://hub")))
    ui = new_target(TargetConfig(type="tackle-ui", tackle_ui=TackleUIConfig(url="http://ui")))

    assert type(hub) is TackleHubTarget
    assert isinstance(ui, TackleUITarget)
    assert (hub.name, ui.name) == ("tackle-hub", "tackle-ui")


def test_rpc_and_vscode_targets(tmp_path):
    server = tmp_path / "konveyor.kai-1.0.0" / "assets" / "bin" / "kai-analyzer-rpc"
    server.parent.mkdir(parents=True)
    server.touch()

    rpc = new_target(TargetConfig(type="kai-rpc", kai_rpc=KaiRPCConfig(host="localhost", port=9000)))
    vscode = new_target(
        TargetConfig(
            type="vscode",
            vscode=VSCodeConfig(extension_id="konveyor.kai", extensions_dir=str(tmp_path)),
        )
    )

    assert isinstance(rpc, KaiRPCTarget)
    assert isinstance(vscode, VSCodeTarget)
    assert vscode.server_path == server


@pytest.mark.parametrize("target_type", ["tackle-hub", "tackle-ui", "kai-rpc", "vscode"])
def test_missing_sub_config_fails_fast(target_type):
    with pytest.raises(TargetConfigurationError):
        new_target(TargetConfig(type=target_type))


@pytest.mark.parametrize("target_type", ["", "eclipse", "KANTRA"])
def test_unknown_target_type(target_type):
    with pytest.raises(TargetConfigurationError, match="unknown target type"):
        new_target(TargetConfig(type=target_type))
