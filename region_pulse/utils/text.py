"""Text cleanup helpers shared by the collectors."""

import html
import re

_TAG_RE = re.compile(r'<[^>]*>')
_BR_RE = re.compile(r'<br\s*/?>', re.IGNORECASE)
_PARAGRAPH_RE = re.compile(r'</p>\s*<p>', re.IGNORECASE)


def decode_entities(text: str) -> str:
    """解碼 named / decimal / hex entities (&amp; &#39; &#x27;)"""
    return html.unescape(text or '')


def clean_html(text: str, keep_breaks: bool = False) -> str:
    """
    HTML -> 純文字

    Args:
        text: HTML 片段
        keep_breaks: 是否將 <br> 與段落轉成換行

    Returns:
        去除標籤並解碼 entities 的文字
    """
    text = text or ''
    if keep_breaks:
        text = _BR_RE.sub('\n', text)
        text = _PARAGRAPH_RE.sub('\n\n', text)
    # 先去標籤再解碼，避免 &lt;b&gt; 被當成標籤移除
    return decode_entities(_TAG_RE.sub('', text)).replace('\xa0', ' ').strip()
