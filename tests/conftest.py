import httpx
import pytest

from suppscore.utils.http import HttpFetcher


class FakeClock:
    """Manually advanced time source, in seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleeps():
    """Async sleep replacement that records requested delays."""
    calls = []

    async def sleep(seconds):
        calls.append(seconds)

    sleep.calls = calls
    return sleep


@pytest.fixture
def fetcher_factory():
    """Build an HttpFetcher whose requests are answered by ``handler``."""
    def make(handler):
        return HttpFetcher(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    return make


SUPPLEMENT_FACTS_TABLE = """
<table>
  <tr><th colspan="2">Supplement Facts</th></tr>
  <tr><td>Serving Size</td><td>1 scoop (35 g)</td></tr>
  <tr><td>Servings Per Container</td><td>28</td></tr>
  <tr><td>Calories</td><td>130</td></tr>
  <tr><td>Total Fat</td><td>1.5 g</td></tr>
  <tr><td>Cholesterol</td><td>45 mg</td></tr>
  <tr><td>Sodium</td><td>110 mg</td></tr>
  <tr><td>Potassium</td><td>160 mg</td></tr>
  <tr><td>Total Carbohydrate</td><td>3 g</td></tr>
  <tr><td>Total Sugars</td><td>1 g</td></tr>
  <tr><td>Protein</td><td>25 g</td></tr>
  <tr><td>Calcium</td><td>120 mg</td></tr>
  <tr><td>Iron</td><td>0.5 mg</td></tr>
</table>
"""


@pytest.fixture
def shopify_page():
    return f"""
<html>
<head>
  <meta name="generator" content="Shopify">
  <meta property="og:title" content="Quattro Protein | Magnum">
  <title>Quattro Protein – Magnum Nutraceuticals</title>
</head>
<body>
  <h1 class="product__title">Quattro Protein</h1>
  <div class="product__description rte">
    <p>Ingredients: Whey Protein Isolate, Micellar Casein, Egg Albumin, Natural and Artificial Flavors, Sucralose (milk, egg).</p>
    {SUPPLEMENT_FACTS_TABLE}
  </div>
  <div class="jdgm-review-widget">
    <h2>Customer Reviews</h2>
    <p>Best protein ever, 5 stars!</p>
  </div>
</body>
</html>
"""


@pytest.fixture
def bare_page():
    return "<html><body><h1>Mystery Greens</h1><p>Tastes like a garden.</p></body></html>"


@pytest.fixture
def ocr_label_text():
    return (
        "SUPPLEMENT FACTS\n"
        "Serving Size 1 scoop (10 g)\n"
        "Servings Per Container 30\n"
        "Amount Per Serving %DV\n"
        "Calories 35\n"
        "Vitamin C 60 mg 67%\n"
        "Organic Spirulina 500 mg\n"
        "INGREDIENTS: Organic Wheat Grass, Organic Spirulina, Organic Chlorella, Natural Flavors."
    )


@pytest.fixture
def facts_table():
    return SUPPLEMENT_FACTS_TABLE
