"""
CLI: Command Line Interface for Region Pulse

支援 init-config、run 和 classify 命令。
"""

import asyncio
import click
import logging
from pathlib import Path
from datetime import datetime
from typing import Optional
import uuid

from region_pulse.config import RegionPulseConfig
from region_pulse.models import RunMetadata
from region_pulse.collectors.orchestrator import FetchService
from region_pulse.processing.activity import (
    calculate_publisher_activity,
    calculate_region_activity,
    compute_region_baselines,
    filter_window,
)
from region_pulse.processing.region_detection import detect_region
from region_pulse.processing.region_patterns import REGION_DISPLAY_NAMES, REGIONS
from region_pulse.processing.trending import get_trending_keywords
from region_pulse.storage.file_store import FileStore
from region_pulse.utils import hashing
from region_pulse.utils.time import utcnow

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

LEVEL_MARKERS = {"critical": "!!", "elevated": "! ", "normal": "  "}


@click.group()
def cli():
    """Region Pulse: multi-source OSINT ingestion CLI"""
    pass


@cli.command()
@click.option('--out', default='config.yaml', help='Output config file path')
def init_config(out: str):
    """產生範本設定檔"""

    example_path = Path(__file__).parent.parent / 'config.example.yaml'

    if example_path.exists():
        with open(example_path, 'r', encoding='utf-8') as f:
            content = f.read()
    else:
        # Minimal fallback
        content = """# Region Pulse Configuration
output_dir: "out"
publishers: []
"""

    with open(out, 'w', encoding='utf-8') as f:
        f.write(content)

    click.echo(f"✓ Config file created: {out}")
    click.echo(f"  Edit this file and run: region-pulse run --config {out}")


@cli.command()
@click.option('--config', required=True, help='Config YAML file path')
def run(config: str):
    """執行一次抓取、分類與活動度計算"""

    click.echo("=" * 60)
    click.echo("Region Pulse")
    click.echo("=" * 60)

    logger.info(f"Loading config: {config}")
    cfg = RegionPulseConfig.from_yaml(config)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    run_id = f"run_{timestamp}_{uuid.uuid4().hex[:8]}"
    logger.info(f"Run ID: {run_id}")

    storage = FileStore(cfg.output_dir)

    run_meta = RunMetadata(
        run_id=run_id,
        generated_at=utcnow(),
        config_hash=hashing.config_hash(cfg.model_dump()),
        publisher_count=len(cfg.publishers),
        status="running",
        stats={}
    )

    try:
        # Step 1: Fetch
        logger.info("=" * 40)
        logger.info("STEP 1: Fetching publishers")
        logger.info("=" * 40)

        now = utcnow()
        items, fetch_stats = asyncio.run(collect(cfg, now))
        click.echo(f"✓ Collected {fetch_stats['deduped_count']} items from {len(cfg.publishers)} publishers "
                   f"({fetch_stats['failed_publishers']} failed, "
                   f"{fetch_stats['duplicates_by_id']} duplicates)")

        # Step 2: Activity
        logger.info("=" * 40)
        logger.info("STEP 2: Regional activity")
        logger.info("=" * 40)

        baselines = compute_region_baselines(cfg.publishers, cfg.activity)
        window_items = filter_window(items, cfg.activity.window_hours, now)
        activity = calculate_region_activity(window_items, baselines, now, cfg.activity)
        publisher_activity = calculate_publisher_activity(window_items, cfg.activity)

        # Step 3: Trending
        logger.info("=" * 40)
        logger.info("STEP 3: Trending keywords")
        logger.info("=" * 40)

        trending = get_trending_keywords(window_items, cfg.trending_limit)

        # Step 4: Write outputs
        logger.info("=" * 40)
        logger.info("STEP 4: Writing outputs")
        logger.info("=" * 40)

        storage.save_items(run_id, items)
        storage.save_activity(run_id, activity)
        storage.save_publisher_activity(run_id, publisher_activity)
        storage.save_trending(run_id, trending)

        run_meta.status = "completed"
        run_meta.stats = dict(fetch_stats, window_count=len(window_items))
        storage.save_run(run_meta)
        click.echo(f"✓ Written outputs to {storage.base_dir / run_id}")

        # Summary
        click.echo("\n" + "=" * 60)
        click.echo("RUN SUMMARY")
        click.echo("=" * 60)
        click.echo(f"Run ID: {run_id}")
        click.echo(f"Fetched: {fetch_stats['fetched_count']} items")
        click.echo(f"After dedupe: {fetch_stats['deduped_count']} items")
        click.echo(f"Unassigned: {fetch_stats['unassigned_count']} items")
        click.echo(f"\nActivity (last {cfg.activity.window_hours}h):")
        for region, window in activity.items():
            click.echo(f"  {LEVEL_MARKERS[window.level]} {REGION_DISPLAY_NAMES.get(region, region):<16} "
                       f"{window.count:>4} / {window.baseline:<4} {window.multiplier:.1f}x  {window.level}")
        if trending.keywords:
            kw_str = ', '.join(f"{k.keyword} ({k.count})" for k in trending.keywords[:5])
            click.echo(f"\nTrending: {kw_str}")
        surging = [p for p in publisher_activity.values() if p.is_anomalous]
        if surging:
            click.echo("\nSurging publishers: " + ', '.join(
                f"{p.publisher_id} ({p.recent_posts} posts, {p.anomaly_ratio:.1f}x)" for p in surging
            ))

    except Exception as e:
        logger.error(f"Run failed: {e}", exc_info=True)
        run_meta.status = "failed"
        run_meta.stats['error'] = str(e)
        storage.save_run(run_meta)
        raise


async def collect(cfg: RegionPulseConfig, now: Optional[datetime] = None):
    """在 FetchService 生命週期內抓取所有 publishers"""
    async with FetchService(cfg) as service:
        return await service.collect(now=now)


@cli.command()
@click.argument('text')
@click.option('--default-region', default=None,
              type=click.Choice(list(REGIONS) + ['all', 'none'], case_sensitive=False),
              help='Publisher default region (omit for none)')
def classify(text: str, default_region: Optional[str]):
    """顯示一段文字的 region 評分"""
    if default_region and default_region.lower() in ("all", "none"):
        default_region = None
    detection = detect_region(text, default_region)
    assignment = detection.assignment

    if assignment.region is None:
        click.echo("Region: unassigned")
    else:
        suffix = " (publisher default)" if assignment.used_fallback else ""
        click.echo(f"Region: {assignment.region}{suffix}")

    for match in detection.matches:
        keywords = ', '.join(match.matched_keywords)
        click.echo(f"  {match.region:<14} score={match.score:<3} {match.confidence:<6} [{keywords}]")


if __name__ == "__main__":
    cli()
