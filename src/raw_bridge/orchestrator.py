import os
import concurrent.futures
from typing import Any, Dict, List, Optional

from . import core
from .config import DEFAULT_JOBS, SUPPORTED_RAW_EXTENSIONS


def find_raw_files(input_dir: str) -> List[str]:
    """目录下所有受支持的 RAW 文件名（按名称排序）"""
    return sorted(
        f for f in os.listdir(input_dir)
        if os.path.splitext(f)[1].lower() in SUPPORTED_RAW_EXTENSIONS
    )


def process_path(
    input_path: str,
    full_output: bool = False,
    settings: Optional[Dict[str, Any]] = None,
    jobs: int = DEFAULT_JOBS,
    logger_func=print,  # A function to handle logging, e.g., print or queue.put
    session_factory: Optional[core.SessionFactory] = None,
) -> List[Dict[str, Any]]:
    """
    Reads metadata from a single file or every RAW file in a directory.

    Each file gets its own session. With jobs > 1 the files are spread over a
    process pool; a failing file is logged and skipped, the batch continues.
    """

    def log_message(msg):
        if hasattr(logger_func, 'put'):
            logger_func.put(msg)
        else:
            logger_func(msg)

    # ============================
    #    Single File Processing
    # ============================
    if not os.path.isdir(input_path):
        log_message("⚙️ Processing single file...")
        return [core.read_metadata(
            input_path,
            full_output=full_output,
            settings=settings,
            log_queue=logger_func,
            session_factory=session_factory,
        )]

    # ============================
    #      Batch Processing
    # ============================
    raw_files = find_raw_files(input_path)
    if not raw_files:
        log_message("⚠️ No supported RAW files found in the input directory.")
        raise ValueError("No RAW files found.")

    log_message(f"🔍 Found {len(raw_files)} RAW files.")
    results: Dict[str, Dict[str, Any]] = {}

    if jobs <= 1:
        for filename in raw_files:
            try:
                results[filename] = core.read_metadata(
                    os.path.join(input_path, filename),
                    full_output=full_output,
                    settings=settings,
                    log_queue=logger_func,
                    session_factory=session_factory,
                )
            except Exception as exc:
                log_message(f"[{filename}] ❌ Generated an exception: {exc}")
    else:
        # 工作进程里只能用可 pickle 的参数，自定义会话工厂不跨进程传递
        with concurrent.futures.ProcessPoolExecutor(max_workers=jobs) as executor:
            futures = {
                executor.submit(
                    core.read_metadata,
                    os.path.join(input_path, filename),
                    full_output,
                    settings,
                    logger_func,
                ): filename for filename in raw_files
            }

            for future in concurrent.futures.as_completed(futures):
                filename = futures[future]
                try:
                    results[filename] = future.result()
                except Exception as exc:
                    log_message(f"[{filename}] ❌ Generated an exception: {exc}")

    log_message(f"\n🎉 Batch complete: {len(results)}/{len(raw_files)} files read.")
    return [results[f] for f in raw_files if f in results]
