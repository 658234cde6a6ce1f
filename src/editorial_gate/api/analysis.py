"""
内容分析 API 路由 - 链接 / 质量 / 对比 / 修订校验
"""
from typing import Optional
from fastapi import APIRouter
from pydantic import BaseModel

from editorial_gate.services.diff_service import (
    DiffResult,
    diff_content,
    render_split,
    render_unified,
)
from editorial_gate.services.link_service import LinkReport, LinkRules, analyze_links, can_publish_links
from editorial_gate.services.quality_service import (
    QualityMeta,
    QualitySnapshot,
    QualityThresholds,
    evaluate_quality,
)
from editorial_gate.services.validation_service import (
    FeedbackItem,
    ValidationResult,
    generate_validation_summary,
    validate_revision,
)

router = APIRouter(prefix="/analysis", tags=["内容分析"])


# ============ 请求/响应模型 ============

class LinkAnalysisRequest(BaseModel):
    """链接分析请求，规则不传时使用配置"""
    content: str
    rules: Optional[LinkRules] = None


class LinkAnalysisResponse(BaseModel):
    report: LinkReport
    can_publish: bool
    reason: Optional[str] = None


class QualityRequest(BaseModel):
    """质量评估请求"""
    content: str
    keywords: list[str] = []
    faq_count: int = 0
    thresholds: Optional[QualityThresholds] = None


class DiffRequest(BaseModel):
    """版本对比请求"""
    old_content: str = ""
    new_content: str = ""
    mode: str = "unified"  # unified/split
    show_additions: bool = True
    show_deletions: bool = True


class DiffResponse(BaseModel):
    result: DiffResult
    unified: Optional[list] = None
    old_side: Optional[list] = None
    new_side: Optional[list] = None


class ValidateRequest(BaseModel):
    """修订校验请求"""
    previous_content: str
    revised_content: str
    feedback_items: list[FeedbackItem]


class ValidateResponse(BaseModel):
    result: ValidationResult
    report: str


# ============ API 接口 ============

@router.post("/links", response_model=LinkAnalysisResponse)
async def analyze_content_links(request: LinkAnalysisRequest):
    """分析文章链接合规性"""
    report = analyze_links(request.content, request.rules)
    verdict = can_publish_links(report)
    return LinkAnalysisResponse(
        report=report,
        can_publish=verdict["can_publish"],
        reason=verdict["reason"],
    )


@router.post("/quality", response_model=QualitySnapshot)
async def evaluate_content_quality(request: QualityRequest):
    """计算质量快照"""
    meta = QualityMeta(keywords=request.keywords, faq_count=request.faq_count)
    return evaluate_quality(request.content, meta=meta, thresholds=request.thresholds)


@router.post("/diff", response_model=DiffResponse)
async def diff_versions(request: DiffRequest):
    """对比两个版本"""
    result = diff_content(request.old_content, request.new_content)
    response = DiffResponse(result=result)
    if request.mode == "split":
        old_side, new_side = render_split(result)
        response.old_side = [p.model_dump() for p in old_side]
        response.new_side = [p.model_dump() for p in new_side]
    else:
        response.unified = [
            p.model_dump()
            for p in render_unified(result, request.show_additions, request.show_deletions)
        ]
    return response


@router.post("/validate", response_model=ValidateResponse)
async def validate_content_revision(request: ValidateRequest):
    """校验修订是否处理了批注"""
    result = validate_revision(
        request.previous_content,
        request.revised_content,
        request.feedback_items,
    )
    return ValidateResponse(result=result, report=generate_validation_summary(result))
