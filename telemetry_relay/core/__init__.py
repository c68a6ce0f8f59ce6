from telemetry_relay.core.hexline import decode_hex_line, encode_hex_line

__all__ = ["decode_hex_line", "encode_hex_line"]
