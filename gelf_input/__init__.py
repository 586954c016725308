"""GELF UDP input — decodes GELF datagrams into (tag, time, record) events."""
