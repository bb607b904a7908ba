"""
Tweet Archive - Index Page

A bare search page that calls /search; uploads redirect here.
"""

from fastapi import APIRouter
from fastapi.responses import HTMLResponse

router = APIRouter(include_in_schema=False)

INDEX_PAGE = """<!DOCTYPE html>
<html>
<head><title>Tweet archive search</title></head>
<body>
<h1>Search your tweets</h1>
<form id="search">
  <input type="text" name="q" autofocus>
  <input type="submit" value="Search">
</form>
<p><a href="/upload">Upload an archive</a></p>
<ol id="results"></ol>
<script>
document.getElementById("search").addEventListener("submit", async (event) => {
  event.preventDefault();
  const q = new FormData(event.target).get("q");
  const response = await fetch("/search?q=" + encodeURIComponent(q));
  const body = await response.json();
  const list = document.getElementById("results");
  list.replaceChildren(...(body.tweets || []).map((tweet) => {
    const item = document.createElement("li");
    item.textContent = tweet.timestamp + " " + tweet.text;
    return item;
  }));
});
</script>
</body>
</html>
"""


@router.get("/", response_class=HTMLResponse)
def index() -> str:
    return INDEX_PAGE
