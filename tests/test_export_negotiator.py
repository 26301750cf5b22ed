from urllib.parse import quote

import pytest

from modules.errors import EmptyGroupError, ExportError, ShareUnavailable
from modules.export_channels import (
    CANCELLED,
    DELIVERED,
    ExportRequest,
    NativeFileShare,
    build_caption,
    build_share_link,
    build_summary,
)
from modules.export_negotiator import READY_TO_LINK, ExportNegotiator
from modules.models import Group, GroupMember, LabelOptions, ShareTarget
from tests.helpers import FakePlatform, fake_compose, make_design

THREE = [make_design("d1"), make_design("d2", fabric="Cotton"), make_design("d3", fabric="Linen")]


def _group(*phones):
    members = [GroupMember(name=f"m{i}", phone_number=p) for i, p in enumerate(phones)]
    return Group(id="g1", name="Retailers", members=members)


def _negotiator(platform, sleeps, compositor=fake_compose):
    return ExportNegotiator(platform, compositor=compositor, sleep=sleeps)


def test_caption_and_link():
    caption = build_caption(3)
    assert caption == "📦 TextileHub Catalogue\n\n3 designs attached. Check the images for details! 🎨"
    assert build_caption(1).startswith("📦 TextileHub Catalogue\n\n1 design attached.")
    assert build_share_link(caption) == "https://wa.me/?text=" + quote(caption, safe="")
    assert build_share_link("hi there", "919876543210") == "https://wa.me/919876543210?text=hi%20there"


def test_summary_lists_fabric_and_retail():
    assert build_summary(THREE[:2]) == "1. Silk - ₹1,800\n2. Cotton - ₹1,800"


def test_download_and_link_when_nothing_native(sleeps):
    platform = FakePlatform()
    result = _negotiator(platform, sleeps).export(THREE, LabelOptions(), "Firm")

    assert result.status == READY_TO_LINK
    assert result.channel == "download_and_link"
    assert result.filenames == ["TextileHub_Design_1.jpg", "TextileHub_Design_2.jpg", "TextileHub_Design_3.jpg"]
    assert [name for name, _ in platform.saved] == result.filenames
    assert [data for _, data in platform.saved] == [b"jpeg:d1", b"jpeg:d2", b"jpeg:d3"]
    assert sleeps.calls == [0.3, 0.3]
    assert result.links == ["https://wa.me/?text=" + quote(build_caption(3), safe="")]
    assert platform.shared == []


def test_single_design_saves_without_delay(sleeps):
    platform = FakePlatform()
    _negotiator(platform, sleeps).export(THREE[:1], LabelOptions())
    assert len(platform.saved) == 1
    assert sleeps.calls == []


def test_native_file_share_delivers_without_saving(sleeps):
    platform = FakePlatform(native=True, files=True)
    result = _negotiator(platform, sleeps).export(THREE, LabelOptions())

    assert result.status == DELIVERED
    assert result.channel == "native_file_share"
    assert platform.saved == []
    assert result.links == []
    (share,) = platform.shared
    assert share["text"] == build_caption(3)
    assert [name for name, _ in share["files"]] == result.filenames


def test_native_cancel_ends_quietly(sleeps):
    platform = FakePlatform(native=True, files=True, text=True, on_share="cancel")
    result = _negotiator(platform, sleeps).export(THREE, LabelOptions())

    assert result.status == CANCELLED
    assert len(platform.shared) == 1
    assert platform.saved == []


def test_native_error_falls_through_to_text_share(sleeps):
    platform = FakePlatform(native=True, files=True, text=True)
    calls = []

    def share(*, title, text, files=None):
        calls.append(files)
        if files:
            raise RuntimeError("attachment rejected")

    platform.share = share
    result = _negotiator(platform, sleeps).export(THREE, LabelOptions())
    assert result.channel == "native_text_share"
    assert len(calls) == 2
    assert calls[1] is None


def test_text_share_then_saves_files(sleeps):
    platform = FakePlatform(native=True, files=False, text=True)
    result = _negotiator(platform, sleeps).export(THREE, LabelOptions())

    assert result.status == DELIVERED
    assert result.channel == "native_text_share"
    (share,) = platform.shared
    assert share["files"] is None
    assert share["text"].startswith(build_caption(3))
    assert "1. Silk - ₹1,800" in share["text"]
    assert [name for name, _ in platform.saved] == result.filenames


def test_text_share_keeps_partial_saves_when_saving_fails(sleeps):
    platform = FakePlatform(native=True, files=False, text=True, save_limit=1)
    result = _negotiator(platform, sleeps).export(THREE, LabelOptions())

    assert result.status == DELIVERED
    assert result.channel == "native_text_share"
    assert result.saved_files == ["TextileHub_Design_1.jpg"]
    assert len(platform.shared) == 1


def test_group_gets_one_link_per_reachable_member(sleeps):
    platform = FakePlatform()
    target = ShareTarget.for_group(_group("+91 98765 43210", "", "91-99887-76655"))
    negotiator = _negotiator(platform, sleeps)
    result = negotiator.export(THREE, LabelOptions(), target=target)

    assert result.status == READY_TO_LINK
    assert [link.split("?")[0] for link in result.links] == [
        "https://wa.me/919876543210",
        "https://wa.me/919988776655",
    ]

    sleeps.calls.clear()
    assert negotiator.open_links(result.links) == 2
    assert platform.opened == result.links
    assert sleeps.calls == [1.5]


def test_group_native_share_still_opens_member_links(sleeps):
    platform = FakePlatform(native=True, files=True)
    target = ShareTarget.for_group(_group("911", "922"))
    result = _negotiator(platform, sleeps).export(THREE, LabelOptions(), target=target)

    assert result.status == READY_TO_LINK
    assert result.channel == "native_file_share"
    assert [link.split("?")[0] for link in result.links] == ["https://wa.me/911", "https://wa.me/922"]
    assert len(platform.shared[0]["files"]) == 3
    assert platform.saved == []


def test_group_cancel_still_falls_back_to_links(sleeps):
    platform = FakePlatform(native=True, files=True, on_share="cancel")
    target = ShareTarget.for_group(_group("919876543210"))
    result = _negotiator(platform, sleeps).export(THREE, LabelOptions(), target=target)

    assert result.status == READY_TO_LINK
    assert result.channel == "download_and_link"
    assert len(platform.saved) == 3


def test_empty_group_rejected_before_rendering(sleeps):
    rendered = []

    def compositor(design, options=None, firm_name=None):
        rendered.append(design.id)
        return fake_compose(design)

    platform = FakePlatform()
    target = ShareTarget.for_group(_group("", "n/a"))
    with pytest.raises(EmptyGroupError, match="Select a group with members"):
        _negotiator(platform, sleeps, compositor).export(THREE, LabelOptions(), target=target)
    assert rendered == []
    assert platform.saved == []


def test_empty_selection_rejected(sleeps):
    with pytest.raises(ExportError, match="Select at least one design"):
        _negotiator(FakePlatform(), sleeps).export([], LabelOptions())


def test_one_bad_design_aborts_whole_batch(sleeps):
    platform = FakePlatform()
    designs = [make_design("d1"), make_design("d2", image="broken"), make_design("d3")]
    with pytest.raises(ExportError) as excinfo:
        _negotiator(platform, sleeps).export(designs, LabelOptions())

    assert "Could not prepare images" in str(excinfo.value)
    assert "#2 (d2)" in str(excinfo.value)
    assert [f["index"] for f in excinfo.value.failures] == [2]
    assert platform.saved == []


def test_blocked_popup_navigates_in_place(sleeps):
    platform = FakePlatform(open_ok=False)
    _negotiator(platform, sleeps).open_links(["https://wa.me/?text=x"])
    assert platform.navigated == ["https://wa.me/?text=x"]


def test_no_channel_delivers(sleeps):
    platform = FakePlatform()
    request = ExportRequest(artifacts=[("a.jpg", fake_compose(make_design()))], caption="c")
    with pytest.raises(ShareUnavailable):
        _negotiator(platform, sleeps).negotiate(request, [NativeFileShare(platform, sleep=sleeps)])


def test_real_compositor_scenario(sleeps):
    platform = FakePlatform()
    negotiator = ExportNegotiator(platform, sleep=sleeps)
    result = negotiator.export(THREE, LabelOptions(), "Lakshmi Textiles")

    assert result.filenames[-1] == "TextileHub_Design_3.jpg"
    for _, data in platform.saved:
        assert data[:2] == b"\xff\xd8"
