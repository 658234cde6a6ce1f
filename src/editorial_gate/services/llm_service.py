"""
LLM 服务封装 - 统一调用大模型
"""
import asyncio
from typing import Optional

from langchain_openai import ChatOpenAI
from langchain_core.messages import HumanMessage, SystemMessage

from editorial_gate.core import get_settings, get_logger

logger = get_logger(__name__)
settings = get_settings()


class LLMService:
    """
    LLM 服务封装

    修订流程只用到异步生成接口
    """

    def __init__(self):
        """初始化 LLM 客户端"""
        self.llm = ChatOpenAI(
            model=settings.openai_model,
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            temperature=settings.revision_temperature,
            max_tokens=settings.revision_max_tokens,
        )
        self.model_name = settings.openai_model
        logger.info(f"LLM 服务初始化完成，使用模型: {settings.openai_model}")

    def _build_messages(self, prompt: str, system_prompt: Optional[str] = None) -> list:
        messages = []
        if system_prompt:
            messages.append(SystemMessage(content=system_prompt))
        messages.append(HumanMessage(content=prompt))
        return messages

    async def agenerate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> str:
        """
        异步生成

        Args:
            prompt: 用户提示
            system_prompt: 系统提示
            temperature: 温度参数，默认取配置
            max_tokens: 最大输出 token，默认取配置
            timeout: 超时秒数，默认取配置

        Returns:
            LLM 回复内容

        Raises:
            asyncio.TimeoutError: 超时
        """
        options = {}
        if temperature is not None:
            options["temperature"] = temperature
        if max_tokens is not None:
            options["max_tokens"] = max_tokens
        llm = self.llm.bind(**options) if options else self.llm

        response = await asyncio.wait_for(
            llm.ainvoke(self._build_messages(prompt, system_prompt)),
            timeout=timeout or settings.revision_timeout_seconds,
        )
        content = response.content
        if isinstance(content, list):
            # 多段内容只保留文本
            content = "".join(
                part.get("text", "") if isinstance(part, dict) else str(part)
                for part in content
            )
        return content or ""


# 全局单例
_llm_service: Optional[LLMService] = None


def get_llm_service() -> LLMService:
    """获取 LLM 服务单例"""
    global _llm_service
    if _llm_service is None:
        _llm_service = LLMService()
    return _llm_service
