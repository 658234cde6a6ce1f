"""
配置管理 - 环境变量 / .env 统一读取
"""
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


# 竞品站点，外链命中即阻断发布
DEFAULT_BLOCKED_DOMAINS = [
    "onlineu.com",
    "usnews.com",
    "affordablecollegesonline.com",
    "toponlinecollegesusa.com",
    "bestcolleges.com",
    "niche.com",
    "collegeconfidential.com",
    "cappex.com",
    "collegeraptor.com",
    "collegesimply.com",
    "graduateguide.com",
    "gradschools.com",
    "petersons.com",
    "princetonreview.com",
    "collegexpress.com",
]

# 外链白名单：政府、统计、认证机构和非营利组织
DEFAULT_ALLOWED_EXTERNAL_DOMAINS = [
    "bls.gov",
    "stats.bls.gov",
    "ed.gov",
    "nces.ed.gov",
    "studentaid.gov",
    "fafsa.gov",
    "collegescorecard.ed.gov",
    "chea.org",
    "aacsb.edu",
    "abet.org",
    "cacrep.org",
    "ccne-accreditation.org",
    "cswe.org",
    "ncate.org",
    "teac.org",
    "collegeboard.org",
    "acenet.edu",
    "aacn.nche.edu",
    "naspa.org",
    "apa.org",
    "nasw.org",
    "nursingworld.org",
]


class Settings(BaseSettings):
    """应用配置"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API 配置
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    debug: bool = True
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
    ]

    # OpenAI 兼容 API 配置
    openai_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("OPENAI_API_KEY", "LLM_API_KEY"),
    )
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        validation_alias=AliasChoices("OPENAI_BASE_URL", "LLM_BASE_URL"),
    )
    openai_model: str = Field(
        default="gpt-4o-mini",
        validation_alias=AliasChoices("OPENAI_MODEL", "LLM_MODEL"),
    )

    # AI 修订调用参数
    revision_temperature: float = 0.7
    revision_max_tokens: int = 16000
    revision_timeout_seconds: float = 180.0

    # 数据库配置
    database_url: str = "sqlite:///./data/editorial_gate.db"

    # 日志配置
    log_level: str = "INFO"

    # 链接规则
    site_domains: list[str] = ["geteducated.com", "www.geteducated.com", "localhost"]
    blocked_domains: list[str] = Field(default_factory=lambda: list(DEFAULT_BLOCKED_DOMAINS))
    allowed_external_domains: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_EXTERNAL_DOMAINS)
    )

    # 质量阈值
    min_word_count: int = 800
    max_word_count: int = 2500
    min_internal_links: int = 3
    min_external_links: int = 1
    require_bls_citation: bool = False
    require_faq_schema: bool = False
    require_headings: bool = True
    min_heading_count: int = 3
    min_images: int = 1
    require_image_alt_text: bool = True
    keyword_density_min: float = 0.5
    keyword_density_max: float = 2.5
    min_readability_score: int = 60
    max_readability_score: int = 80

    # 内容变更后重新分析的防抖间隔（毫秒）
    analysis_debounce_ms: int = 500


@lru_cache()
def get_settings() -> Settings:
    """获取配置单例"""
    return Settings()
