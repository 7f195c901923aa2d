#!/usr/bin/env python
"""
Build pipeline - compiles promotions, checks the catalog and runs the tests.

Usage:
    python scripts/build_all.py
"""
import subprocess
import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from promo_pricing.config.settings import get_settings
from promo_pricing.data.catalog import build_catalog_report
from promo_pricing.promotions.compile_promotions import compile_promotions


def main():
    settings = get_settings()

    print("=" * 60)
    print("PROMO PRICING BUILD PIPELINE")
    print("=" * 60)
    print()

    print("[1/3] Compiling promotions...")
    success, promotions, errors = compile_promotions(settings.promotions_csv, settings.compiled_promotions)
    if not success:
        print("\n❌ PROMOTION COMPILE FAILED")
        sys.exit(1)

    print()
    print("[2/3] Checking catalog...")
    report = build_catalog_report(settings, verbose=True)

    if report["status"] != "success":
        print("\n❌ BUILD FAILED")
        for error in report["errors"]:
            print(f"  ERROR: {error}")
        sys.exit(1)

    print()
    print("[3/3] Running tests...")

    test_result = subprocess.run(
        [sys.executable, '-m', 'pytest', 'tests', '-q', '--tb=short'],
        cwd=Path(__file__).parent.parent
    )

    if test_result.returncode != 0:
        print("\n❌ TESTS FAILED")
        sys.exit(1)

    print()
    print("=" * 60)
    print("✅ BUILD COMPLETE")
    print("=" * 60)
    print()
    print("Summary:")
    print(f"  Promotions: {len(promotions)} ({sum(1 for p in promotions if p.is_active)} active)")
    print(f"  Products: {report['metrics']['product_count']}")
    print(f"  With tier pricing: {report['metrics']['tier_priced_products']}")
    print(f"  Missing price: {report['metrics']['missing_price']}")
    print()
    print("Blueprint Usage:")
    for name, count in report['metrics'].get('blueprint_usage', {}).items():
        print(f"  {name}: {count} products")


if __name__ == "__main__":
    main()
