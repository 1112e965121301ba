"""
SCRIPTBOARD Data Models

공통 데이터 모델 정의 (Pydantic 기반)
- Character: 로스터 슬롯 하나 (이름, 참조 이미지, 스타일 노트)
- StoryboardRow: 스토리보드 한 줄 (원본 필드, 캐릭터, 생성 이력, 상태)
- ProjectData: 저장/불러오기용 프로젝트 페이로드
- GenerationOutcome: 외부 생성 호출 결과

Persisted keys are camelCase (aliases); Python attributes are snake_case.
"""

from enum import Enum
from typing import Optional, List, Union, Literal
from pydantic import BaseModel, Field, field_validator, model_validator


Cell = Union[int, float, str]

# 원본 행 컬럼 순서
COL_STT = 0
COL_OTHER_LANG = 1
COL_VIETNAMESE = 2
COL_PROMPT_NAME = 3
COL_CONTEXT_PROMPT = 4
SOURCE_COLUMNS = 5


class RowStatus(str, Enum):
    """행 처리 상태"""
    IDLE = "idle"
    GENERATING_ASSET = "generating_asset"
    GENERATING_PROMPT = "generating_prompt"


class Character(BaseModel):
    """로스터 슬롯. 삭제되지 않고 비워지기만 합니다."""
    model_config = {"populate_by_name": True, "frozen": True}

    name: str = ""
    images: List[str] = Field(default_factory=list, description="참조 이미지 (data URL)")
    style_prompt: str = Field(default="", alias="stylePrompt", description="스타일 노트")

    @property
    def is_empty(self) -> bool:
        return not self.name and not self.images and not self.style_prompt


class AdjustmentOptions(BaseModel):
    """Remake adjustments folded into the image prompt."""
    model_config = {"populate_by_name": True}

    options: List[str] = Field(default_factory=list)
    manual_prompt: str = Field(default="", alias="manualPrompt")


class ColumnMapping(BaseModel):
    """Source column index for each mapped field; None means not mapped."""
    stt: Optional[int] = None
    other_lang: Optional[int] = None
    vietnamese: Optional[int] = None
    prompt_name: Optional[int] = None
    context_prompt: Optional[int] = None

    @classmethod
    def identity(cls) -> "ColumnMapping":
        return cls(stt=0, other_lang=1, vietnamese=2, prompt_name=3, context_prompt=4)


class StoryboardRow(BaseModel):
    """
    스토리보드 한 줄.

    Rows are immutable snapshots: every change produces a new row through
    model_copy() and the table replaces it whole by id.
    """
    model_config = {"populate_by_name": True, "frozen": True}

    id: int
    original_row: List[Cell] = Field(default_factory=list, alias="originalRow")
    context_prompt: str = Field(default="", alias="contextPrompt")
    selected_character_indices: List[int] = Field(default_factory=list, alias="selectedCharacterIndices")
    generated_images: List[str] = Field(default_factory=list, alias="generatedImages")
    main_image_index: int = Field(default=-1, alias="mainImageIndex")
    status: RowStatus = RowStatus.IDLE
    error: Optional[str] = None
    last_used_prompt: Optional[str] = Field(default=None, alias="lastUsedPrompt")
    video_prompt: str = Field(default="", alias="videoPrompt")

    @field_validator("original_row", mode="before")
    @classmethod
    def _pad_original_row(cls, value):
        cells = ["" if cell is None else cell for cell in (value or [])]
        if len(cells) < SOURCE_COLUMNS:
            cells.extend([""] * (SOURCE_COLUMNS - len(cells)))
        return cells

    @model_validator(mode="after")
    def _check_main_index(self):
        if not -1 <= self.main_image_index < len(self.generated_images):
            raise ValueError(
                f"main_image_index {self.main_image_index} out of range "
                f"for {len(self.generated_images)} assets"
            )
        return self

    @property
    def tag(self) -> Cell:
        return self.original_row[COL_STT]

    @property
    def scene_text(self) -> str:
        return str(self.original_row[COL_VIETNAMESE] or "")

    @property
    def is_busy(self) -> bool:
        return self.status != RowStatus.IDLE

    def main_asset(self) -> Optional[str]:
        """현재 메인 에셋. 인덱스가 -1이면 가장 최근 에셋으로 폴백."""
        if not self.generated_images:
            return None
        index = self.main_image_index if self.main_image_index > -1 else len(self.generated_images) - 1
        return self.generated_images[index]

    def with_new_asset(self, asset: str, used_prompt: Optional[str] = None) -> "StoryboardRow":
        """Append an asset and make it main. The history only grows here."""
        images = [*self.generated_images, asset]
        update = {
            "generated_images": images,
            "main_image_index": len(images) - 1,
            "status": RowStatus.IDLE,
            "error": None,
        }
        if used_prompt is not None:
            update["last_used_prompt"] = used_prompt
        return self.model_copy(update=update)

    def with_main(self, index: int) -> "StoryboardRow":
        if not 0 <= index < len(self.generated_images):
            raise ValueError(f"No asset at index {index} for row {self.id}")
        return self.model_copy(update={"main_image_index": index})


class ProjectMeta(BaseModel):
    model_config = {"populate_by_name": True}

    project_name: str = Field(default="", alias="projectName")
    selected_style_prompt: str = Field(default="", alias="selectedStylePrompt")
    video_prompt_note: str = Field(default="", alias="videoPromptNote")


class ProjectData(ProjectMeta):
    """저장 파일 형태 (현재 스키마)"""
    table_data: List[StoryboardRow] = Field(default_factory=list, alias="tableData")
    characters: List[Character] = Field(default_factory=list)


class ChatMessage(BaseModel):
    role: Literal["user", "model"]
    content: str = ""


class SafetyRating(BaseModel):
    category: str
    probability: str


class GenerationOutcome(BaseModel):
    """
    외부 이미지 생성 호출 결과.

    Either ``asset`` is set, or the remaining fields explain why not.
    """
    asset: Optional[str] = None
    finish_reason: Optional[str] = None
    text: Optional[str] = None
    safety_ratings: List[SafetyRating] = Field(default_factory=list)
