#!/usr/bin/env python3
"""
Basic pagecode Usage Example

This example demonstrates the core workflow:
1. Open a PDF and decode one QR code per page
2. Follow progress from a background run
3. Fill in unreadable pages by hand
4. Export the results
"""

import time

from pagecode import DecodeConfig, DocumentPipeline, create_pipeline


def main():
    # ─────────────────────────────────────────────────────────────────────────
    # 1. Basic Decode
    # ─────────────────────────────────────────────────────────────────────────

    pipeline = create_pipeline()
    pipeline.open("path/to/scans.pdf")

    state = pipeline.run()

    print(f"Decoded {len(state.decoded_texts)} of {state.page_count} pages")
    for text in state.decoded_texts:
        print(f"  {text}")
    print(pipeline.summary())

    # ─────────────────────────────────────────────────────────────────────────
    # 2. Custom Configuration + Background Run
    # ─────────────────────────────────────────────────────────────────────────

    config = DecodeConfig(
        retry_dpi=300,  # Retry degraded pages at a higher resolution
        debug_dir="debug",  # Keep images of pages that stay unreadable
    )
    pipeline = DocumentPipeline(config)
    pipeline.open("path/to/scans.pdf")

    pipeline.start()
    while pipeline.is_running:
        print(f"  {pipeline.progress_percent()}% (page {pipeline.current_page})")
        time.sleep(0.5)
    state = pipeline.wait()

    # ─────────────────────────────────────────────────────────────────────────
    # 3. Manual Entries
    # ─────────────────────────────────────────────────────────────────────────

    for page_number in state.unreadable_pages:
        pipeline.add_manual_result(f"MISSING-PAGE-{page_number}")

    # ─────────────────────────────────────────────────────────────────────────
    # 4. Export
    # ─────────────────────────────────────────────────────────────────────────

    pipeline.export_results("results.csv")
    pipeline.close()


if __name__ == "__main__":
    main()
