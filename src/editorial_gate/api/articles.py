"""
文章 API 路由
"""
from typing import Optional
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from editorial_gate.core import get_logger
from editorial_gate.models import Article, ArticleStatus
from editorial_gate.api.errors import to_http_error
from editorial_gate.services.link_service import LinkReport, analyze_links
from editorial_gate.services.quality_service import (
    QualityMeta,
    QualitySnapshot,
    count_words,
    evaluate_quality,
    plain_text,
)
from editorial_gate.services.store import SQLModelStore

logger = get_logger(__name__)
router = APIRouter(prefix="/articles", tags=["文章"])

# 服务实例
store = SQLModelStore()


# ============ 请求/响应模型 ============

class FAQItem(BaseModel):
    question: str
    answer: str


class CreateArticleRequest(BaseModel):
    """创建文章请求"""
    title: str
    content: str = ""
    focus_keyword: Optional[str] = None
    target_keywords: list[str] = []
    content_type: Optional[str] = None
    contributor_name: Optional[str] = None
    contributor_style: Optional[str] = None
    faqs: list[FAQItem] = []


class SaveArticleRequest(BaseModel):
    """保存文章请求，只更新传入的字段"""
    title: Optional[str] = None
    content: Optional[str] = None
    focus_keyword: Optional[str] = None
    target_keywords: Optional[list[str]] = None
    content_type: Optional[str] = None
    contributor_name: Optional[str] = None
    contributor_style: Optional[str] = None
    faqs: Optional[list[FAQItem]] = None
    status: Optional[ArticleStatus] = None


class ArticleResponse(BaseModel):
    """文章响应"""
    id: int
    title: str
    content: str
    word_count: int
    focus_keyword: Optional[str]
    target_keywords: list[str]
    content_type: Optional[str]
    contributor_name: Optional[str]
    contributor_style: Optional[str]
    faqs: list[dict]
    status: str
    created_at: str
    updated_at: str


def article_response(article: Article) -> ArticleResponse:
    return ArticleResponse(
        id=article.id,
        title=article.title,
        content=article.content,
        word_count=article.word_count,
        focus_keyword=article.focus_keyword,
        target_keywords=article.target_keyword_list(),
        content_type=article.content_type,
        contributor_name=article.contributor_name,
        contributor_style=article.contributor_style,
        faqs=article.faq_list(),
        status=article.status,
        created_at=article.created_at.isoformat(),
        updated_at=article.updated_at.isoformat(),
    )


def _get_article(article_id: int) -> Article:
    article = store.get_article(article_id)
    if not article:
        raise HTTPException(status_code=404, detail=f"文章不存在: {article_id}")
    return article


# ============ API 接口 ============

@router.post("", response_model=ArticleResponse)
async def create_article(request: CreateArticleRequest):
    """创建文章"""
    if not request.title.strip():
        raise HTTPException(status_code=400, detail="请提供文章标题")

    data = request.model_dump()
    data["faqs"] = [faq.model_dump() for faq in request.faqs]
    data["word_count"] = count_words(plain_text(request.content))
    article = store.create_article(data)
    return article_response(article)


@router.get("/{article_id}", response_model=ArticleResponse)
async def get_article(article_id: int):
    """获取文章"""
    return article_response(_get_article(article_id))


@router.put("/{article_id}", response_model=ArticleResponse)
async def save_article(article_id: int, request: SaveArticleRequest):
    """保存文章"""
    try:
        patch = request.model_dump(exclude_unset=True)
        if request.faqs is not None:
            patch["faqs"] = [faq.model_dump() for faq in request.faqs]
        if request.status is not None:
            patch["status"] = request.status.value
        if request.content is not None:
            patch["word_count"] = count_words(plain_text(request.content))

        article = store.save_article(article_id, patch)
        logger.info(f"保存文章: id={article_id}, fields={sorted(patch)}")
        return article_response(article)
    except Exception as e:
        raise to_http_error(e)


@router.get("/{article_id}/quality", response_model=QualitySnapshot)
async def get_article_quality(article_id: int):
    """当前内容的质量快照"""
    article = _get_article(article_id)
    return evaluate_quality(article.content, meta=QualityMeta.from_article(article))


@router.get("/{article_id}/links", response_model=LinkReport)
async def get_article_links(article_id: int):
    """当前内容的链接报告"""
    article = _get_article(article_id)
    return analyze_links(article.content)
