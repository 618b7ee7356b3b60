"""
Tests Package - Unit tests for Course Exporter.
===============================================

Test modules:
- test_normalizers: Text, duration, timestamp and date normalization
- test_extraction: Parser, lesson walk, payload assembly
- test_orchestration: Request state machine, recovery flows, browser tab
- test_export: Writers, artifacts, exporter flow
- test_cli: Typer commands
- test_config: YAML defaults and environment overrides

Run tests with:
    pytest tests/
    pytest tests/ -v
"""
