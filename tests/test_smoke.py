"""Smoke test to verify the package and its subpackages import."""


def test_import_line_follower():
    """Verify the line_follower package can be imported."""
    import line_follower

    assert line_follower.__version__ == "0.1.0"


def test_subpackages_importable():
    """Verify all subpackages can be imported."""
    import line_follower.control
    import line_follower.race
    import line_follower.robot
    import line_follower.simulation
    import line_follower.telemetry
    import line_follower.track

    assert line_follower.track is not None
    assert line_follower.robot is not None
    assert line_follower.control is not None
    assert line_follower.race is not None
    assert line_follower.telemetry is not None
    assert line_follower.simulation is not None
