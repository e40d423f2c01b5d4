import re

from bs4 import BeautifulSoup

_STRIPPED_TAGS = ("script", "style", "head", "title", "meta", "link")
_BLOCK_TAGS = ("p", "div", "li", "tr", "h1", "h2", "h3", "h4", "h5", "h6", "blockquote")


def html_to_text(html: str) -> str:
    """Reduce an HTML body to the plain text a reader would see."""
    soup = BeautifulSoup(html or "", "html.parser")
    for tag in soup(list(_STRIPPED_TAGS)):
        tag.decompose()
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for block in soup.find_all(list(_BLOCK_TAGS)):
        block.insert_after("\n")

    text = soup.get_text()
    text = text.replace("\xa0", " ")
    text = re.sub(r"\r\n?", "\n", text)
    text = re.sub(r"[ \t]+\n", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()
