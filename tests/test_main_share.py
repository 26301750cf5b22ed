import argparse

import main_share
from modules.export_negotiator import READY_TO_LINK
from modules.models import LabelOptions


def _args(**overrides):
    values = {"wholesale": None, "retail": None, "fabric": None, "description": None, "firm_name": None}
    values.update(overrides)
    return argparse.Namespace(**values)


def test_build_options_applies_flags():
    assert main_share.build_options(_args()) == LabelOptions()
    options = main_share.build_options(_args(wholesale=True, retail=False))
    assert options.include_wholesale and not options.include_retail
    assert options.include_fabric


def test_sample_designs_render():
    designs = main_share.get_sample_designs()
    assert [d.fabric for d in designs] == ["Silk", "Cotton", "Georgette"]
    assert all(d.image.startswith("data:image/png;base64,") for d in designs)


def test_test_mode_pipeline_saves_files(tmp_path):
    result = main_share.share_pipeline(test_mode=True, out_dir=tmp_path)
    assert result.status == READY_TO_LINK
    assert sorted(p.name for p in tmp_path.iterdir()) == [
        "TextileHub_Design_1.jpg",
        "TextileHub_Design_2.jpg",
        "TextileHub_Design_3.jpg",
    ]


def test_test_mode_group_links(tmp_path):
    result = main_share.share_pipeline(test_mode=True, group_id="sample", out_dir=tmp_path)
    assert [link.split("?")[0] for link in result.links] == [
        "https://wa.me/919876543210",
        "https://wa.me/919988776655",
    ]
