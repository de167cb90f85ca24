import asyncio
import json
from collections import deque
from contextlib import suppress
from typing import Any, AsyncIterator, Dict, List, NamedTuple, Optional
from urllib.parse import urlparse

from yt_dlp.extractor.youtube import YoutubeIE

from vidrelay.config.settings import config
from vidrelay.core.errors import ExtractionError
from vidrelay.models.internal import RawAuthor, RawFormat, RawThumbnail, RawVideoInfo
from vidrelay.services.format import FormatDecision

STDERR_MAX_LINES = 50
STDERR_SUMMARY_CHARS = 200

class CompletedProcess(NamedTuple):
    """Subprocess result"""
    returncode: int
    stdout: bytes
    stderr: bytes

class SubprocessExecutor:
    """Execute subprocess with consistent error handling"""

    @staticmethod
    async def run(
        cmd: List[str],
        timeout: float,
        capture_stderr: bool = True
    ) -> CompletedProcess:
        """
        Run subprocess with timeout and proper cleanup.
        Prevents process leaks and ensures consistent error handling.
        """
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE if capture_stderr else asyncio.subprocess.DEVNULL,
            stdin=asyncio.subprocess.DEVNULL
        )

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=timeout
            )

            return CompletedProcess(
                returncode=process.returncode,
                stdout=stdout,
                stderr=stderr if capture_stderr else b""
            )

        except BaseException:
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise

class YTDLPCommandBuilder:
    """Build yt-dlp commands"""

    @staticmethod
    def _common_options() -> List[str]:
        opts = [
            '--no-playlist',
            '--socket-timeout', str(config.download.socket_timeout),
            '--retries', str(config.download.retries),
        ]
        if config.ytdlp.js_runtime:
            opts.extend(['--js-runtimes', config.ytdlp.js_runtime])
        return opts

    @staticmethod
    def build_version_command() -> List[str]:
        return [config.ytdlp.binary, '--version']

    @staticmethod
    def build_info_command(url: str) -> List[str]:
        """Build command for fetching video info"""
        return [
            config.ytdlp.binary,
            '--dump-json',
            *YTDLPCommandBuilder._common_options(),
            '--',
            url,
        ]

    @staticmethod
    def build_stream_command(url: str, format_str: str) -> List[str]:
        """Build command that writes the selected format to stdout"""
        # NOTE: --print would mix with binary output on stdout
        return [
            config.ytdlp.binary,
            '-f', format_str,
            '-o', '-',
            *YTDLPCommandBuilder._common_options(),
            '--no-progress',
            '--quiet',
            '--',
            url,
        ]

def _has_codec(codec: Optional[str]) -> bool:
    return bool(codec) and codec != "none"

def _quality_label(fmt: Dict[str, Any]) -> Optional[str]:
    height = fmt.get("height")
    if height:
        fps = fmt.get("fps")
        if fps and fps > 30:
            return f"{height}p{int(round(fps))}"
        return f"{height}p"
    return fmt.get("format_note")

def parse_format(fmt: Dict[str, Any]) -> Optional[RawFormat]:
    """Map a yt-dlp format dict; None for formats that cannot be reselected by itag"""
    format_id = str(fmt.get("format_id") or "")
    if not (format_id.isascii() and format_id.isdigit()) or not fmt.get("url"):
        return None

    return RawFormat(
        quality_label=_quality_label(fmt),
        container=fmt.get("ext") or "unknown",
        url=fmt["url"],
        itag=int(format_id),
        has_video=_has_codec(fmt.get("vcodec")),
        has_audio=_has_codec(fmt.get("acodec")),
    )

def parse_video_info(info: Dict[str, Any]) -> RawVideoInfo:
    """Normalize `yt-dlp --dump-json` output"""
    thumbnails = [
        RawThumbnail(url=t["url"])
        for t in info.get("thumbnails") or []
        if t.get("url")
    ]
    if not thumbnails and info.get("thumbnail"):
        thumbnails = [RawThumbnail(url=info["thumbnail"])]

    duration = info.get("duration") or 0
    formats = [parsed for parsed in map(parse_format, info.get("formats") or []) if parsed]

    return RawVideoInfo(
        title=info.get("title") or "",
        thumbnails=thumbnails,
        length_seconds=max(int(duration), 0),
        author=RawAuthor(name=info.get("uploader") or info.get("channel") or ""),
        formats=formats,
    )

class YtDlpStream:
    """Forward-only byte stream over a yt-dlp process writing media to stdout.

    Call ``prime()`` before handing the stream out: it waits for the first
    chunk so that a stream that cannot be opened fails early. ``aclose()``
    kills and reaps the process and may be called any number of times.
    """

    def __init__(self, process: asyncio.subprocess.Process, chunk_size: int):
        self._process = process
        self._chunk_size = chunk_size
        self._first_chunk = b""
        self._closed = False
        self._stderr_lines: deque = deque(maxlen=STDERR_MAX_LINES)
        self._stderr_task = asyncio.create_task(self._drain_stderr())

    async def _drain_stderr(self) -> None:
        """Drain stderr to prevent buffer deadlock"""
        while True:
            line = await self._process.stderr.readline()
            if not line:
                break
            self._stderr_lines.append(line.decode(errors="ignore").strip())

    async def _failure(self, message: str) -> ExtractionError:
        returncode = await self._process.wait()
        # stderr reaches EOF once the process is gone
        await asyncio.wait({self._stderr_task}, timeout=1.0)
        summary = "\n".join(self._stderr_lines)[:STDERR_SUMMARY_CHARS]
        return ExtractionError(f"{message} (exit {returncode}): {summary}")

    async def prime(self) -> None:
        chunk = await self._process.stdout.read(self._chunk_size)
        if not chunk:
            raise await self._failure("yt-dlp produced no output")
        self._first_chunk = chunk

    async def __aiter__(self) -> AsyncIterator[bytes]:
        if self._first_chunk:
            chunk, self._first_chunk = self._first_chunk, b""
            yield chunk

        while True:
            chunk = await self._process.stdout.read(self._chunk_size)
            if not chunk:
                break
            yield chunk

        if await self._process.wait() != 0:
            raise await self._failure("yt-dlp stream ended with an error")

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True

        if self._process.returncode is None:
            with suppress(ProcessLookupError):
                self._process.kill()
        await self._process.wait()

        self._stderr_task.cancel()
        with suppress(asyncio.CancelledError):
            await self._stderr_task

class YtDlpExtractionClient:
    """Extraction client backed by the yt-dlp executable"""

    def validate(self, url: str) -> bool:
        if not url:
            return False
        # YoutubeIE also matches bare video ids; only full page URLs are accepted
        try:
            scheme = urlparse(url).scheme.lower()
        except ValueError:
            return False
        if scheme not in ("http", "https"):
            return False
        return bool(YoutubeIE.suitable(url))

    async def get_info(self, url: str) -> RawVideoInfo:
        cmd = YTDLPCommandBuilder.build_info_command(url)

        try:
            result = await SubprocessExecutor.run(cmd, timeout=config.download.info_timeout)
        except asyncio.TimeoutError as e:
            raise ExtractionError("yt-dlp info timed out") from e
        except OSError as e:
            raise ExtractionError(f"yt-dlp could not be started: {e}") from e

        if result.returncode != 0:
            error_msg = result.stderr.decode(errors="ignore").strip()
            raise ExtractionError(
                f"yt-dlp info failed (exit {result.returncode}): {error_msg[:STDERR_SUMMARY_CHARS]}"
            )

        try:
            info = json.loads(result.stdout.decode())
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ExtractionError("Failed to parse yt-dlp output") from e

        if not isinstance(info, dict):
            raise ExtractionError("yt-dlp returned an unexpected data structure")

        return parse_video_info(info)

    async def open_stream(
        self,
        url: str,
        container: str = "mp4",
        itag: Optional[int] = None
    ) -> YtDlpStream:
        format_str = FormatDecision.decide(container, itag)
        cmd = YTDLPCommandBuilder.build_stream_command(url, format_str)

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                stdin=asyncio.subprocess.DEVNULL
            )
        except OSError as e:
            raise ExtractionError(f"yt-dlp could not be started: {e}") from e

        stream = YtDlpStream(process, config.download.chunk_size)
        try:
            await stream.prime()
        except BaseException:
            await stream.aclose()
            raise
        return stream
