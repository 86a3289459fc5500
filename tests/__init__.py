"""Test suite for the FormBuilder core.

This package contains tests for:
- Field definition model (defaults, updates, serialization)
- Builder state machine transitions and the store handle
- Drag-interaction resolver
- Validation engine
- Event system
- Submission endpoint and form filler
- Integration scenarios (build, publish, fill, submit)
"""
