"""
HTML 解析工具

链接、质量评分和版本对比共用同一套解析，保证三处看到的纯文本一致
"""
import re
from typing import Optional

from bs4 import BeautifulSoup

WHITESPACE_PATTERN = re.compile(r"\s+")

# 不计入正文的标签
NON_CONTENT_TAGS = ["script", "style"]


def parse_html(content: Optional[str]) -> BeautifulSoup:
    """解析 HTML，残缺标签由解析器容错处理"""
    return BeautifulSoup(content or "", "html.parser")


def collapse_whitespace(text: Optional[str]) -> str:
    return WHITESPACE_PATTERN.sub(" ", text or "").strip()


def soup_text(soup: BeautifulSoup) -> str:
    """
    提取纯文本

    会移除 soup 中的 script/style 节点；标签边界替换为空格，实体已解码，空白合并
    """
    for node in soup(NON_CONTENT_TAGS):
        node.decompose()
    return collapse_whitespace(soup.get_text(" "))


def html_to_text(content: Optional[str]) -> str:
    """HTML 转纯文本"""
    if not content:
        return ""
    return soup_text(parse_html(content))
