"""Tool interface, registry and the media capture, transcoding and upload tools."""