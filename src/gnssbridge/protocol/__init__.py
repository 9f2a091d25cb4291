"""Wire protocol codecs (Modbus TCP, NTP).

These modules are pure: bytes in, bytes out. Sockets live in
:mod:`gnssbridge.server`.
"""
