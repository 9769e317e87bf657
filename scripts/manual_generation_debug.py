"""One-off script for debugging the generation lifecycle from the command line."""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from config.settings import load_config
from studio.services.generation_service import GenerationController, GenerationState
from studio.utils.image_utils import UploadedImage, decode_data_url
from studio.utils.logging import setup_logging


async def run(image_path: Path, prompt: str, style: str, abort_after: float | None) -> None:
    config = load_config()
    setup_logging(config)

    controller = GenerationController(config)
    controller.subscribe(lambda state, ctrl: print(f"[state] {state.value} (retries={ctrl.retry_count})"))

    # 1. 读取并规范化输入图像
    await controller.load_image(UploadedImage.from_path(image_path))
    controller.set_prompt(prompt)
    controller.set_style(style)

    # 2. 发起生成；可选地在指定秒数后取消
    task = asyncio.create_task(controller.generate())
    if abort_after is not None:
        await asyncio.sleep(abort_after)
        controller.abort()
    response = await task

    print("状态:", controller.state.value, controller.error or controller.notice)
    if controller.state is GenerationState.SUCCEEDED and response is not None:
        mime_type, data = decode_data_url(response.image_url)
        suffix = ".jpg" if mime_type == "image/jpeg" else ".png"
        out_path = Path(f"debug_generation_output{suffix}")
        out_path.write_bytes(data)
        print("图像已保存:", out_path.resolve())
    print("历史记录条数:", len(controller.history))


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run one generation against the simulated backend.")
    parser.add_argument("image", type=Path)
    parser.add_argument("--prompt", default="A model wearing the outfit on a city street")
    parser.add_argument("--style", default="editorial")
    parser.add_argument("--abort-after", type=float, default=None, help="Cancel after N seconds")
    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()
    asyncio.run(run(args.image, args.prompt, args.style, args.abort_after))
