import json
import subprocess
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]


def test_payload_json_schema_uses_wire_names(registry):
    schema = registry["Child"].model_json_schema(by_alias=True)

    assert "isDir" in schema["properties"]
    assert "isDir" in schema["required"]
    assert "is_dir" not in schema["properties"]


def test_export_script_runs(tmp_path):
    out_dir = tmp_path / "schemas"
    cmd = [sys.executable, str(REPO_ROOT / "scripts" / "export_schemas.py"), "--out-dir", str(out_dir)]
    subprocess.check_call(cmd)
    module_path = out_dir / "subsonic_types.py"
    schema_path = out_dir / "response_schema.json"
    assert module_path.exists()
    assert schema_path.exists()
    data = json.loads(schema_path.read_text())
    assert data["version"] == "1.16.1"
    assert "indexes" in data["variants"]
    assert "class Child(SubsonicRecord):" in module_path.read_text()
