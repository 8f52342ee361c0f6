#!/usr/bin/env python
"""
CaptureLens Quickstart Demo

This script walks through the capture workflow without a camera:
1. Create a synthetic frame and serve it from an ArrayFrameSource
2. Draw an ROI with pointer events
3. Run the live preview for a second with a few effects enabled
4. Capture a single shot, a burst and a preset-augmented shot
5. Save the last preview (with ROI overlay) to disk

Run with: python examples/demo_quickstart.py
"""

import asyncio
import logging

import numpy as np

from capturelens import (
    ArrayFrameSource,
    CaptureController,
    CapturedImage,
    CaptureSession,
    LivePreviewRenderer,
    MatplotlibPreviewDisplay,
    PipelineConfig,
)


def create_dummy_frame() -> np.ndarray:
    """
    Generate a 640x480 frame with a gradient background and a target disc.

    Returns
    -------
    np.ndarray
        (480, 640, 3) uint8 RGB frame.
    """
    height, width = 480, 640
    y_coords, x_coords = np.ogrid[:height, :width]

    frame = np.zeros((height, width, 3), dtype=np.uint8)
    frame[:, :, 0] = (255 * np.arange(width) / width).astype(np.uint8)
    frame[:, :, 1] = (255 * np.arange(height) / height).astype(np.uint8)[:, np.newaxis]
    frame[:, :, 2] = 128

    disc_mask = ((x_coords - 320) ** 2 + (y_coords - 240) ** 2) <= 90 ** 2
    frame[disc_mask] = [255, 100, 50]
    return frame


async def run_demo() -> None:
    print("=" * 60)
    print("CaptureLens Quickstart Demo")
    print("=" * 60)

    dataset: list[CapturedImage] = []
    source = ArrayFrameSource([create_dummy_frame()])
    session = CaptureSession(
        viewport_size=(640, 480),
        config=PipelineConfig(encode_format="PNG", assess_quality=True, random_seed=7),
        class_name="target",
    )

    print("\n[Step 1] Drawing an ROI around the disc...")
    session.roi_engine.pointer_down(200, 120)
    session.roi_engine.pointer_move(440, 360)
    roi = session.roi_engine.pointer_up()
    print(f"  ✓ ROI: {roi}")

    print("\n[Step 2] Running the live preview for one second...")
    session.augmentations.enable("brightness", 1.2)
    session.augmentations.enable("saturation", 1.4)
    session.augmentations.enable("noise", 0.05)
    display = MatplotlibPreviewDisplay(figsize=(8, 6))
    preview = LivePreviewRenderer(session, source, display=display)
    preview.enable()
    await asyncio.sleep(1.0)
    print(f"  ✓ Rendered {preview.ticks_rendered} preview ticks")

    controller = CaptureController(session, source, preview=preview, listeners=[dataset.append])

    print("\n[Step 3] Capturing a single shot...")
    single = await controller.capture_single()
    print(f"  ✓ {single!r}")

    print("\n[Step 4] Capturing a burst of 5 shots, 200 ms apart...")
    burst = await controller.capture_burst(5, interval_ms=200)
    print(f"  ✓ {len(burst)} images captured")

    output_path = "examples/demo_preview.png"
    display.save(output_path)
    preview.disable()
    display.close()

    print("\n[Step 5] Capturing with the low_light preset and random effects...")
    session.activate_preset("low_light")
    augmented = await controller.capture_burst_with_augmentation(["random"])
    print(f"  ✓ Applied effects: {', '.join(augmented.applied_effects)}")

    print("\n" + "=" * 60)
    print(f"Demo complete! {len(dataset)} images in the dataset.")
    print(f"Open '{output_path}' to see the preview with its ROI overlay.")
    print("=" * 60)


def main():
    """Run the full demo pipeline."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    asyncio.run(run_demo())


if __name__ == "__main__":
    main()
