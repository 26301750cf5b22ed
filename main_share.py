#!/usr/bin/env python3
"""
Share pipeline: render branded design images and export them.

Usage:
    python main_share.py --user <id> --designs a1 b2 c3   # Share selected designs
    python main_share.py --user <id> --all                # Every design of the user
    python main_share.py --user <id> --all --group <gid>  # One chat link per member
    python main_share.py --test                           # Generated samples, no database
    python main_share.py --test --wholesale --no-retail   # Toggle label fields
"""

import argparse
import base64
import io
import logging
import sys
import uuid
from datetime import datetime
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from PIL import Image, ImageDraw

from config.settings import DOWNLOADS_DIR, LOGS_DIR, PREVIEW_DIR
from modules.catalogue_store import get_db_runtime_info, get_designs, get_group, get_user, list_designs
from modules.errors import CatalogueShareError
from modules.export_negotiator import ExportNegotiator
from modules.models import Design, Group, LabelOptions, ShareTarget
from modules.platforms import LocalPlatform
from modules.share_session import STATE_READY_TO_LINK, ShareSession

logger = logging.getLogger("share")


def setup_logging(verbose: bool = False):
    """Configure logging to both console and file."""
    level = logging.DEBUG if verbose else logging.INFO
    log_file = LOGS_DIR / f"share_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

    from config.settings import LOG_DATE_FORMAT, LOG_FORMAT

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file),
        ],
    )
    logger.info(f"Log file: {log_file}")


def _sample_image(color: tuple, size: tuple = (900, 1200)) -> str:
    img = Image.new("RGB", size, color)
    draw = ImageDraw.Draw(img)
    for x in range(0, size[0], 60):
        draw.line([(x, 0), (x + size[1] // 2, size[1])], fill=(255, 255, 255), width=6)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")


def get_sample_designs() -> list[Design]:
    """Return generated designs for --test mode."""
    samples = [
        ("Silk", "1200", "1800", "Hand-woven Banarasi silk with zari border", (150, 30, 60)),
        ("Cotton", "450", "699", "Breathable summer print", (30, 110, 160)),
        ("Georgette", "780", "1150", "Lightweight drape with floral embroidery along the pallu", (90, 60, 140)),
    ]
    return [
        Design.from_row(
            {
                "id": f"sample-{i}",
                "name": f"{fabric} Sample",
                "fabric": fabric,
                "wholesale_price": wholesale,
                "retail_price": retail,
                "description": description,
                "image": _sample_image(color),
            }
        )
        for i, (fabric, wholesale, retail, description, color) in enumerate(samples, start=1)
    ]


def get_sample_group() -> Group:
    return Group.from_row(
        {
            "id": "sample-group",
            "name": "Retailers",
            "members": [
                {"name": "Asha", "phone_number": "+91 98765 43210"},
                {"name": "Ravi", "phone_number": "91-99887-76655"},
            ],
        }
    )


def load_designs(user_id: str, design_ids: list[str] | None, select_all: bool) -> list[Design]:
    if select_all:
        rows, page = [], 1
        while True:
            batch = list_designs(user_id, page=page, limit=200)
            rows.extend(batch["designs"])
            if page >= batch["pagination"]["pages"]:
                break
            page += 1
    else:
        rows = get_designs(user_id, design_ids or [])
        missing = set(design_ids or []) - {r["id"] for r in rows}
        if missing:
            logger.warning(f"Skipping unknown designs: {', '.join(sorted(missing))}")
    return [Design.from_row(r) for r in rows]


def build_options(args) -> LabelOptions:
    options = LabelOptions()
    for name, flag in (
        ("include_wholesale", args.wholesale),
        ("include_retail", args.retail),
        ("include_fabric", args.fabric),
        ("include_description", args.description),
        ("include_firm_name", args.firm_name),
    ):
        if flag is not None and flag != getattr(options, name):
            options = options.toggled(name)
    return options


def share_pipeline(
    *,
    user_id: str | None = None,
    design_ids: list[str] | None = None,
    select_all: bool = False,
    group_id: str | None = None,
    options: LabelOptions | None = None,
    firm_name: str | None = None,
    out_dir: Path | None = None,
    open_links: bool = False,
    test_mode: bool = False,
):
    """
    Render the selected designs and export them.

    Steps:
    1. Load designs (database, or generated samples in test mode)
    2. Render a preview of the first design
    3. Export through the best available channel
    4. Open the chat link(s) when the download path was taken
    """
    logger.info("=" * 60)
    logger.info(f"Share pipeline starting at {datetime.now().isoformat()}")
    logger.info(f"Mode: {'TEST' if test_mode else 'LIVE'}")
    logger.info("=" * 60)

    # ── Step 1: Selection ───────────────────────────────────────────
    target = ShareTarget.broadcast()
    if test_mode:
        designs = get_sample_designs()
        firm_name = firm_name or "Sample Textiles"
        if group_id:
            target = ShareTarget.for_group(get_sample_group())
    else:
        if not user_id:
            raise RuntimeError("--user is required outside --test mode")
        db_info = get_db_runtime_info()
        logger.info(f"Database: {db_info['dialect']} ({db_info['database_url_masked']})")
        user = get_user(user_id)
        if user is None:
            raise RuntimeError(f"Unknown user: {user_id}")
        firm_name = firm_name or user.get("firm_name")
        designs = load_designs(user_id, design_ids, select_all)
        if group_id:
            group_row = get_group(user_id, group_id)
            if group_row is None:
                raise RuntimeError(f"Unknown group: {group_id}")
            target = ShareTarget.for_group(Group.from_row(group_row))

    logger.info(f"[1/4] Selected {len(designs)} designs for {target.kind}")

    out_dir = Path(out_dir) if out_dir else DOWNLOADS_DIR / uuid.uuid4().hex[:12]
    platform = LocalPlatform(out_dir, open_browser=open_links)
    negotiator = ExportNegotiator(platform)

    with ShareSession(
        designs,
        negotiator,
        options=options,
        firm_name=firm_name,
        target=target,
        preview_dir=PREVIEW_DIR,
    ) as session:
        # ── Step 2: Preview ─────────────────────────────────────────
        handle = session.refresh_preview()
        if handle is not None:
            logger.info(f"[2/4] Preview: {handle.path}")
        elif session.preview_error:
            logger.warning(f"[2/4] Preview failed: {session.preview_error}")

        # ── Step 3: Export ──────────────────────────────────────────
        result = session.prepare_export()
        if result is None:
            raise CatalogueShareError(session.alert or "Share cancelled")
        logger.info(f"[3/4] Exported via {result.channel}: {result.status}")
        for path in result.saved_files:
            logger.info(f"  saved {path}")

        # ── Step 4: Links ───────────────────────────────────────────
        if session.state == STATE_READY_TO_LINK:
            if open_links:
                session.open_link()
            for link in result.links:
                logger.info(f"[4/4] Chat link: {link}")
            logger.info("Attach the saved images manually in the chat")

    logger.info("=" * 60)
    logger.info("Share complete!")
    logger.info("=" * 60)
    return result


def main():
    parser = argparse.ArgumentParser(
        description="TextileHub: branded design sharing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main_share.py --test                         # Sample designs, no database
  python main_share.py --test --group x               # Sample group with two members
  python main_share.py --user U --designs A B         # Share two designs
  python main_share.py --user U --all --open          # Share everything, open chat link
        """,
    )
    parser.add_argument("--user", type=str, help="Owner user id")
    parser.add_argument("--designs", nargs="+", help="Design ids in share order")
    parser.add_argument("--all", action="store_true", help="Share all designs of the user")
    parser.add_argument("--group", type=str, help="Share to every member of this group")
    parser.add_argument("--firm-name", dest="firm", type=str, help="Firm name printed on the label")
    parser.add_argument("--out", type=Path, help="Directory for exported images")
    parser.add_argument("--open", action="store_true", help="Open the chat link(s) in the browser")
    parser.add_argument("--test", action="store_true", help="Use generated sample designs (no database)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    labels = parser.add_argument_group("label fields")
    for flag, dest in (
        ("wholesale", "wholesale"),
        ("retail", "retail"),
        ("fabric", "fabric"),
        ("description", "description"),
        ("show-firm-name", "firm_name"),
    ):
        labels.add_argument(f"--{flag}", dest=dest, action="store_true", default=None)
        labels.add_argument(f"--no-{flag}", dest=dest, action="store_false")

    args = parser.parse_args()

    setup_logging(verbose=args.verbose)

    if not args.test and not (args.designs or args.all):
        parser.error("pass --designs or --all (or --test)")

    try:
        share_pipeline(
            user_id=args.user,
            design_ids=args.designs,
            select_all=args.all,
            group_id=args.group,
            options=build_options(args),
            firm_name=args.firm,
            out_dir=args.out,
            open_links=args.open,
            test_mode=args.test,
        )
    except KeyboardInterrupt:
        logger.info("\nShare interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"\nShare failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
