"""Test that the project setup is working correctly."""

import pump_detector


def test_version() -> None:
    """Test that version is defined."""
    assert pump_detector.__version__ == "0.1.0"


def test_import_modules() -> None:
    """Test that all submodules can be imported."""
    from pump_detector import alerter
    from pump_detector import detector
    from pump_detector import ingestor
    from pump_detector import pipeline
    from pump_detector import scanner

    # Just verify imports work
    assert alerter is not None
    assert detector is not None
    assert ingestor is not None
    assert pipeline is not None
    assert scanner is not None
