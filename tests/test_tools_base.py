import pytest

from qraftworx.tools.base import (
    PathError,
    Tool,
    ToolError,
    ToolPermission,
    resolve_output,
    resolve_within,
)


class EchoTool(Tool):
    name = "echo"
    description = "echo"

    def parameters(self):
        return {}

    def requires_confirmation(self):
        return False

    def permissions(self):
        return ToolPermission()

    def execute(self, args, timeout=None):
        data = self._decode_args(args)
        return self._str_arg(data, "text")


def test_permission_defaults_all_false():
    p = ToolPermission()
    assert (p.network, p.file_system, p.hardware, p.media_capture, p.upload) == (
        False, False, False, False, False,
    )


def test_decode_args_json_and_mapping():
    tool = EchoTool()
    assert Tool._decode_args(tool, '{"text": "hi"}') == {"text": "hi"}
    assert Tool._decode_args(tool, {"text": "yo"}) == {"text": "yo"}
    assert tool.execute('{"text": "hi"}') == "hi"
    assert tool.execute("{}") == ""


def test_decode_args_invalid():
    tool = EchoTool()
    with pytest.raises(ToolError, match="invalid args"):
        Tool._decode_args(tool, "{not json")
    with pytest.raises(ToolError):
        Tool._decode_args(tool, "[1, 2]")
    with pytest.raises(ToolError):
        tool.execute('{"text": 5}')


def test_resolve_within_inside(tmp_path):
    f = tmp_path / "a.txt"
    f.write_text("x")
    assert resolve_within(str(f), [tmp_path]) == f.resolve()
    assert resolve_within(tmp_path, [tmp_path]) == tmp_path.resolve()


def test_resolve_within_outside(tmp_path):
    inside = tmp_path / "in"
    outside = tmp_path / "out"
    inside.mkdir()
    outside.mkdir()
    f = outside / "secret"
    f.write_text("x")
    with pytest.raises(PathError):
        resolve_within(f, [inside])


def test_resolve_within_symlink_escape(tmp_path):
    inside = tmp_path / "in"
    outside = tmp_path / "out"
    inside.mkdir()
    outside.mkdir()
    target = outside / "secret"
    target.write_text("x")
    link = inside / "link"
    link.symlink_to(target)
    with pytest.raises(PathError):
        resolve_within(link, [inside])


def test_resolve_within_missing(tmp_path):
    with pytest.raises(PathError):
        resolve_within(tmp_path / "nope", [tmp_path])
    with pytest.raises(PathError):
        resolve_within("", [tmp_path])


def test_resolve_output(tmp_path):
    out = resolve_output(tmp_path / "new.jpg", [tmp_path])
    assert out == tmp_path.resolve() / "new.jpg"
    with pytest.raises(PathError):
        resolve_output(tmp_path / "missing" / "x.jpg", [tmp_path])
    with pytest.raises(PathError):
        resolve_output(tmp_path / ".." / "x.jpg", [tmp_path])