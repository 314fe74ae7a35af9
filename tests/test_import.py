"""Basic import tests for idm-meta."""


def test_import():
    """Test that the package can be imported."""
    import idm_meta

    assert idm_meta.__version__ is not None


def test_public_api():
    """Test that the builder and result type are exported."""
    from idm_meta import MetaConfig, VoxelMeta, create_meta_from_mask

    assert callable(create_meta_from_mask)
    assert MetaConfig().radius == 1
    assert VoxelMeta.__name__ == "VoxelMeta"
