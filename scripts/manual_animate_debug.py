"""One-off script for debugging a real image-to-video run."""

import sys
from pathlib import Path

from config.settings import load_config
from modules.pipelines.img2video import Image2VideoService
from modules.services.history_service import HistoryStore
from modules.services.storage_service import FileStorageBackend
from modules.ui.callbacks import build_callbacks
from modules.utils.logging import setup_logging


def main() -> None:
    # 1. 准备真实配置与服务对象（需要 .env 中的 GEMINI_API_KEY）
    config = load_config()
    setup_logging(config)

    history = HistoryStore(
        FileStorageBackend(config.history_dir, quota_bytes=config.history_quota_bytes),
        key=config.history_key,
        capacity=config.history_limit,
    )
    history.load()

    callbacks = build_callbacks(
        config,
        animator=Image2VideoService(config),
        history=history,
    )

    # 2. 选择输入图像
    image_path = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("debug_input.png")

    # 3. 调用回调，轮询直至完成
    def progress(fraction: float, desc: str = "") -> None:
        print(f"{fraction:>5.0%} {desc}")

    video_path, status, needs_key = callbacks["on_animate"](str(image_path), progress)

    print("状态:", status)
    if needs_key:
        print("API key 无效，请更新 .env 后重试。")
    elif video_path:
        print("视频已保存:", Path(video_path).resolve())
        print("历史记录条数:", len(history))
    else:
        print("未返回视频，请检查状态信息。")


if __name__ == "__main__":
    main()
