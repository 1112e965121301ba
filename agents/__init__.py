"""
SCRIPTBOARD Agents Package

행 테이블 중심 아키텍처:
- TagResolver / Reconciler: 태그 -> 캐릭터 슬롯, 로스터 변경 시 재계산
- TableBuilder / ScriptExtractor: 엑셀 표, 채팅 표, 텍스트 스크립트 가져오기
- RowTable: 행 상태의 단일 소유자 (이벤트 큐)
- BatchOrchestrator: 그룹 단위 일괄 생성
- ImageAgent: 이미지 생성 (Gemini 2.5 Flash Image)
- VideoPromptAgent: 8초 영상 프롬프트 스트리밍
- ScriptChat: 스크립트 대화
"""

from .row_table import RowTable
from .batch_orchestrator import BatchOrchestrator, BatchReport
from .image_agent import ImageAgent
from .video_prompt_agent import VideoPromptAgent
from .script_chat import ScriptChat

__all__ = [
    "RowTable",
    "BatchOrchestrator",
    "BatchReport",
    "ImageAgent",
    "VideoPromptAgent",
    "ScriptChat",
]
