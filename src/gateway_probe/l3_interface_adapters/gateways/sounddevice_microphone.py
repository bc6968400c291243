"""Gateway: sounddevice microphone — implements Microphone port.

Blocks of ``frame_ms`` milliseconds are captured as mono float32 and turned
into PCM16 on the PortAudio callback thread, so readers only move bytes.
"""

from __future__ import annotations

import logging
import queue

import sounddevice as sd

from gateway_probe.l2_use_cases.utils.pcm import REALTIME_SAMPLE_RATE, pcm16_from_float32

log = logging.getLogger('gwp.microphone')

DEFAULT_FRAME_MS = 100


class SounddeviceMicrophone:
    def __init__(
        self,
        sample_rate: int = REALTIME_SAMPLE_RATE,
        frame_ms: int = DEFAULT_FRAME_MS,
        device: int | str | None = None,
    ) -> None:
        self.sample_rate = sample_rate
        self.blocksize = sample_rate * frame_ms // 1000
        self._device = device
        self._stream: sd.InputStream | None = None
        self._frames: queue.Queue[bytes] = queue.Queue()
        self.xruns = 0

    def _on_block(self, indata, frames, time_info, status) -> None:
        if status:
            self.xruns += 1
            log.debug('Input status: %s', status)
        self._frames.put(pcm16_from_float32(indata[:, 0]))

    def start(self) -> None:
        if self._stream is not None:
            return
        self._stream = sd.InputStream(
            samplerate=self.sample_rate,
            channels=1,
            dtype='float32',
            blocksize=self.blocksize,
            device=self._device,
            callback=self._on_block,
        )
        self._stream.start()
        log.info('Microphone open: %d Hz mono, %d samples per frame', self.sample_rate, self.blocksize)

    def read_frame(self, timeout: float = 0.1) -> bytes | None:
        try:
            return self._frames.get(timeout=timeout)
        except queue.Empty:
            return None

    def stop(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        stream.stop()
        stream.close()
        dropped = 0
        while True:
            try:
                self._frames.get_nowait()
            except queue.Empty:
                break
            dropped += 1
        if dropped:
            log.debug('Dropped %d unread frames', dropped)
        if self.xruns:
            log.warning('Microphone reported %d input over/underruns', self.xruns)
