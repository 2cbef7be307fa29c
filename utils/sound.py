"""스캔 결과 효과음 모듈

효과음은 파일 없이 메모리에서 직접 합성합니다. 오디오 장치가 없거나 pygame 초기화에
실패하면 소리만 꺼지고 스캔 처리는 그대로 진행됩니다.
"""

import math
from array import array
from typing import Optional

import pygame

SAMPLE_RATE = 22050

SUCCESS_TONE = {'start_hz': 880.0, 'end_hz': 1760.0, 'duration': 0.1, 'waveform': 'sine', 'gain': 0.1}
ERROR_TONE = {'start_hz': 150.0, 'end_hz': 100.0, 'duration': 0.3, 'waveform': 'sawtooth', 'gain': 0.2}


def build_tone(start_hz: float, end_hz: float, duration: float, waveform: str = 'sine',
               gain: float = 0.2, sample_rate: int = SAMPLE_RATE, channels: int = 1) -> array:
    """주파수가 start_hz 에서 end_hz 로 이동하며 서서히 작아지는 16비트 PCM 샘플을 만듭니다."""
    if waveform not in ('sine', 'sawtooth'):
        raise ValueError(f"지원하지 않는 파형입니다: {waveform}")

    total = max(1, int(sample_rate * duration))
    samples = array('h')
    phase = 0.0
    for i in range(total):
        progress = i / total
        freq = start_hz + (end_hz - start_hz) * progress
        phase = (phase + freq / sample_rate) % 1.0
        if waveform == 'sine':
            value = math.sin(2 * math.pi * phase)
        else:
            value = 2.0 * phase - 1.0
        envelope = gain * (1.0 - progress)
        sample = int(max(-1.0, min(1.0, value * envelope)) * 32767)
        for _ in range(channels):
            samples.append(sample)
    return samples


class SoundPlayer:
    """성공/오류 효과음 재생기"""

    def __init__(self, enabled: bool = True, volume: float = 0.5):
        self.enabled = enabled
        self.volume = max(0.0, min(1.0, float(volume)))
        self.success_sound: Optional[pygame.mixer.Sound] = None
        self.error_sound: Optional[pygame.mixer.Sound] = None
        if self.enabled:
            self._init_mixer()

    def _init_mixer(self):
        try:
            if not pygame.mixer.get_init():
                pygame.mixer.init(frequency=SAMPLE_RATE, size=-16, channels=1)
            frequency, _, channels = pygame.mixer.get_init()
            self.success_sound = self._make_sound(SUCCESS_TONE, frequency, channels)
            self.error_sound = self._make_sound(ERROR_TONE, frequency, channels)
        except pygame.error as e:
            print(f"사운드 초기화 실패: {e}")
            self.enabled = False
            self.success_sound = self.error_sound = None

    def _make_sound(self, tone: dict, frequency: int, channels: int) -> pygame.mixer.Sound:
        samples = build_tone(sample_rate=frequency, channels=channels, **tone)
        sound = pygame.mixer.Sound(buffer=samples.tobytes())
        sound.set_volume(self.volume)
        return sound

    def _play(self, sound: Optional[pygame.mixer.Sound], loops: int = 0):
        if not self.enabled or sound is None:
            return
        try:
            sound.play(loops=loops)
        except pygame.error as e:
            print(f"사운드 재생 실패: {e}")
            self.enabled = False

    def play_success(self):
        self._play(self.success_sound)

    def play_error(self, loop: bool = False):
        """오류음을 재생합니다. loop=True 이면 stop_error() 호출 전까지 반복합니다."""
        self._play(self.error_sound, loops=-1 if loop else 0)

    def stop_error(self):
        if self.error_sound is None:
            return
        try:
            self.error_sound.stop()
        except pygame.error as e:
            print(f"사운드 정지 실패: {e}")

    def close(self):
        if pygame.mixer.get_init():
            pygame.mixer.quit()
