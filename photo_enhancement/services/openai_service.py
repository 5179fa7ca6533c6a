# photo_enhancement/services/openai_service.py
import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import openai
from openai import OpenAI

from photo_enhancement.core.config import EnhancementSettings
from photo_enhancement.core.exceptions import AIServiceError
from photo_enhancement.utils.image_utils import is_valid_image


@dataclass
class EnhancedImage:
    """AI 서비스가 생성한 보정 이미지"""
    data: bytes
    mime_type: str = "image/png"


@dataclass
class NoImageProduced:
    """
    모델이 이미지 없이 텍스트 설명만 반환한 경우.
    전송 오류가 아니라 이번 보정 시도의 최종 실패로 취급합니다.
    """
    reason: str = ""


GenerateResult = Union[EnhancedImage, NoImageProduced]


class OpenAIService:
    """
    OpenAI API 연동을 담당하는 서비스 클래스.
    원본 이미지와 보정 지시문을 한 번의 멀티모달 요청으로 보내고 보정된 이미지를 받아옵니다.
    """

    def __init__(self, client: Optional[OpenAI] = None):
        """
        OpenAI 클라이언트를 None으로 초기화합니다.
        실제 클라이언트는 init_app 메서드를 통해 설정됩니다. (테스트에서는 직접 주입)
        """
        self.client = client
        self.model = None
        self.timeout_seconds = None

    def init_app(self, settings: EnhancementSettings):
        """
        앱 초기화 과정에서 호출되어 OpenAI 클라이언트를 설정합니다.
        자동 재시도는 끄고(max_retries=0), 요청 제한 시간은 파이프라인 예산을 따릅니다.

        :param settings: 검증이 끝난 EnhancementSettings
        """
        if not settings.openai_api_key:
            raise ValueError("OPENAI_API_KEY 설정이 .env 파일에 필요합니다.")

        self.model = settings.openai_image_model
        self.timeout_seconds = settings.ai_timeout_seconds
        if self.client is None:
            self.client = OpenAI(
                api_key=settings.openai_api_key,
                timeout=settings.ai_timeout_seconds,
                max_retries=0,
            )
        logging.info("OpenAIService: OpenAI API 서비스가 성공적으로 초기화되었습니다.")

    def generate(self, image_bytes: bytes, mime_type: str, instruction_prompt: str) -> GenerateResult:
        """
        원본 이미지와 지시문으로 보정 이미지를 생성합니다.

        :param image_bytes: 원본 이미지 바이트
        :param mime_type: 원본 이미지 MIME 타입 (예: "image/jpeg")
        :param instruction_prompt: 보정 지시문
        :return: EnhancedImage 또는 NoImageProduced
        :raises AIServiceError: 타임아웃, 네트워크/전송 오류, API 오류
        """
        if not self.client:
            raise RuntimeError("OpenAIService가 초기화되지 않았습니다. init_app을 먼저 호출해주세요.")

        encoded_image = base64.b64encode(image_bytes).decode("ascii")
        try:
            response = self.client.responses.create(
                model=self.model,
                input=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "input_text", "text": instruction_prompt},
                            {"type": "input_image", "image_url": f"data:{mime_type};base64,{encoded_image}"},
                        ],
                    }
                ],
                tools=[{"type": "image_generation", "output_format": "png"}],
                timeout=self.timeout_seconds,
            )
        except openai.APITimeoutError as e:
            logging.error(f"OpenAI 요청 시간 초과: {e}")
            raise AIServiceError("AI service timeout")
        except openai.APIConnectionError as e:
            logging.error(f"OpenAI 연결 실패: {e}")
            raise AIServiceError("AI service unavailable")
        except openai.APIError as e:
            logging.error(f"OpenAI API 오류: {e}", exc_info=True)
            raise AIServiceError("AI service error")

        return self._parse_response(response)

    def _parse_response(self, response: Any) -> GenerateResult:
        """응답에서 image_generation_call 결과를 찾아 이미지로 변환합니다."""
        for output in getattr(response, "output", None) or []:
            if getattr(output, "type", None) != "image_generation_call":
                continue
            result = getattr(output, "result", None)
            if not result:
                continue
            try:
                data = base64.b64decode(result)
            except (binascii.Error, ValueError) as e:
                logging.error(f"OpenAI 이미지 디코딩 실패: {e}")
                raise AIServiceError("AI service returned an invalid image")
            if not is_valid_image(data):
                raise AIServiceError("AI service returned an invalid image")
            return EnhancedImage(data=data, mime_type="image/png")

        reason = (getattr(response, "output_text", None) or "").strip()
        logging.warning(f"OpenAI 응답에 이미지가 없습니다: {reason[:200]}")
        return NoImageProduced(reason=reason)

    def health_check(self) -> Dict[str, Any]:
        """모니터링용 상태 정보"""
        return {
            "healthy": self.client is not None,
            "model": self.model,
            "timeout_seconds": self.timeout_seconds,
            "tool": "image_generation",
        }
