"""
LLM 服务测试（不发起真实请求）
"""
import asyncio

from langchain_core.messages import AIMessage, SystemMessage

from editorial_gate.services.llm_service import LLMService


class FakeChatModel:
    """记录调用参数的假模型"""

    def __init__(self, content):
        self.content = content
        self.bound = {}
        self.messages = None

    def bind(self, **options):
        self.bound = options
        return self

    async def ainvoke(self, messages):
        self.messages = messages
        return AIMessage(content=self.content)


def test_agenerate_passes_options_and_system_prompt():
    service = LLMService()
    fake = FakeChatModel("<p>Revised</p>")
    service.llm = fake

    result = asyncio.run(
        service.agenerate("Revise this", system_prompt="Return HTML", temperature=0.2, max_tokens=100)
    )

    assert result == "<p>Revised</p>"
    assert fake.bound == {"temperature": 0.2, "max_tokens": 100}
    assert isinstance(fake.messages[0], SystemMessage)
    assert fake.messages[-1].content == "Revise this"


def test_agenerate_flattens_content_blocks():
    service = LLMService()
    service.llm = FakeChatModel([{"type": "text", "text": "<p>A</p>"}, {"type": "text", "text": "<p>B</p>"}])

    assert asyncio.run(service.agenerate("Revise this")) == "<p>A</p><p>B</p>"
