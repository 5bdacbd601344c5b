# qraftworx

qraftworx gives an assistant live printer telemetry and a small set of media
tools that it is allowed to use. Every input is checked before anything
happens.

## Sensors (`qraftworx.sensors`)

- `MoonrakerSensor` asks a Klipper/Moonraker HTTP API for the printer state.
  The answer becomes a `PrinterState`, which is checked against fixed ranges:
  extruder 0–300 °C, bed 0–150 °C, progress 0–1.0, and a state from
  `PrinterStateEnum`.
- `MQTTSensor` subscribes to a topic through any `MQTTClient` and keeps the
  last message that passed its `ValueSchema`. `MQTTConfig.validate()` refuses
  plaintext brokers (`tcp://`, `mqtt://`, `ws://`) unless you set
  `allow_insecure`.
- `Poller` polls several `SensorProvider`s at the same time, with one overall
  timeout. A sensor that cannot be reached, fails or is too slow is left out.
  It does not fail the whole poll.

```python
from qraftworx.sensors.moonraker import MoonrakerSensor
from qraftworx.sensors.poller import Poller

printer = MoonrakerSensor("printer1", "http://localhost:7125", 5.0)
poller = Poller(2.0, printer)
print(poller.poll_all())   # {"printer1": {"extruder_temp_c": ..., ...}} or {}
```

## Tools (`qraftworx.tools`)

Each tool has a name, a description, a parameter schema, a confirmation flag
and a `ToolPermission`. Tools go into a `Registry`. Registering two tools with
the same name raises `DuplicateToolError`.

- `CaptureMediaTool` captures one frame with ffmpeg. The device path comes
  from configuration only.
- `ProcessVideoTool` transcodes a file inside the work directory. It accepts
  only codecs on the allowlist and `WxH` resolutions. It clamps FPS to 1–60
  and duration to 1 ms–24 h.
- `UploadTool` uploads a file from the media directory through a platform
  `Uploader` (`YouTubeUploader`, `TikTokUploader`). It checks the file's
  content type from its header bytes and allows one upload per hour.

`FFmpegBuilder` always runs the program with a separate argument for each
value. It never goes through a shell.

```python
from qraftworx.tools.ffmpeg import FFmpegBuilder
from qraftworx.tools.video import ProcessVideoTool

builder = FFmpegBuilder("ffmpeg", ["/srv/media"], ["/srv/media"])
tool = ProcessVideoTool(builder, "/srv/media")
tool.execute('{"input": "/srv/media/in.mp4", "output": "out.mp4", "codec": "libx264"}')
```

Tools report problems by raising `ToolError` or one of its subclasses.

## Tests

```
pip install -e .[test]
pytest
```