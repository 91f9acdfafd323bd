"""Sample feeds and a fake HTTP session shared by the test suites."""

from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from feedsync.models import NormalizedProduct

ADAM_URL = "https://adamhome.example/feed.xml"
HOMELINE_URL = "https://homeline.example/feed.xml"

ADAM_HOME_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Adam Home</title>
    <item>
      <title><![CDATA[ Bath Towel Set ]]></title>
      <link>https://adamhome.example/towel</link>
      <description><![CDATA[<p>Soft <b>cotton</b> towels</p>]]></description>
      <image_link>https://adamhome.example/towel.jpg</image_link>
      <model_number>AH-100</model_number>
      <price_with_vat>24.80</price_with_vat>
      <price_without_vat>20.00</price_without_vat>
      <size>50x90</size>
      <category><![CDATA[Bath]]></category>
      <availability>In Stock</availability>
      <option>
        <option_name>ΧΡΩΜΑ</option_name>
        <option_value><option_value_name>Λευκό</option_value_name></option_value>
        <option_value><option_value_name>Μπλε</option_value_name></option_value>
      </option>
    </item>
    <item>
      <title>Cushion Cover</title>
      <link>https://adamhome.example/cushion</link>
      <description>Plain cover</description>
      <image_link>https://adamhome.example/cushion.jpg</image_link>
      <model_number>AH-200</model_number>
      <price_with_vat>12,40</price_with_vat>
      <price_without_vat>10.00</price_without_vat>
      <size></size>
      <category>Living</category>
      <availability>Available on request</availability>
    </item>
    <item>
      <title>Duvet</title>
      <link>https://adamhome.example/duvet</link>
      <description>Winter duvet</description>
      <image_link>https://adamhome.example/duvet.jpg</image_link>
      <model_number>AH-300</model_number>
      <price_with_vat>80.00</price_with_vat>
      <price_without_vat>64.52</price_without_vat>
      <size>220x240</size>
      <category>Bedroom</category>
      <availability>Out of stock</availability>
    </item>
  </channel>
</rss>
"""

HOMELINE_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<root>
  <products>
    <product>
      <name><![CDATA[Kitchen Towel]]></name>
      <description><![CDATA[<ul><li>Linen</li></ul>]]></description>
      <mpn>HL-1</mpn>
      <image>https://homeline.example/hl1.jpg</image>
      <product_attribute_color>Red</product_attribute_color>
      <product_attribute_size>40x60</product_attribute_size>
      <InStock>Y</InStock>
      <price_with_vat>5.90</price_with_vat>
      <price_without_discount>7.50</price_without_discount>
      <category>Kitchen</category>
      <link>https://homeline.example/hl1</link>
    </product>
    <product>
      <name>Table Cloth</name>
      <description>Round</description>
      <mpn>HL-2</mpn>
      <image>https://homeline.example/hl2.jpg</image>
      <product_attribute_size>160</product_attribute_size>
      <InStock>N</InStock>
      <price_with_vat>19.90</price_with_vat>
      <price_without_discount>24.90</price_without_discount>
      <category>Kitchen</category>
      <link>https://homeline.example/hl2</link>
    </product>
    <product>
      <name>Nameless Sample</name>
      <description>No model number</description>
      <mpn>   </mpn>
      <image>https://homeline.example/x.jpg</image>
      <InStock>Y</InStock>
      <price_with_vat>1.00</price_with_vat>
      <price_without_discount>1.00</price_without_discount>
      <category>Misc</category>
      <link>https://homeline.example/x</link>
    </product>
    <product>
      <name>Apron</name>
      <description>Cotton apron</description>
      <mpn>HL-3</mpn>
      <image>https://homeline.example/hl3.jpg</image>
      <InStock>Y</InStock>
      <price_with_vat>9.00</price_with_vat>
      <price_without_discount>9.00</price_without_discount>
      <category>Kitchen</category>
      <link>https://homeline.example/hl3</link>
    </product>
  </products>
</root>
"""


def make_product(model: str, **overrides) -> NormalizedProduct:
    """Build an in-stock NormalizedProduct with sensible defaults."""
    fields = {
        "title": f"Product {model}",
        "description": f"<p>Description of {model}</p>",
        "model": model,
        "image": f"https://cdn.example/{model}.jpg",
        "colors": "N/A",
        "size": "M",
        "stock": "Y",
        "price_with_tax": Decimal("12.40"),
        "price_without_tax": Decimal("10.00"),
        "category": "Test",
        "link": f"https://shop.example/{model}",
    }
    fields.update(overrides)
    return NormalizedProduct(**fields)


class FakeResponse:
    def __init__(self, status_code: int = 200, text: str = "", reason: str = "OK"):
        self.status_code = status_code
        self.reason = reason
        self.text = text
        self.content = text.encode("utf-8")


class FakeSession:
    """Stands in for requests.Session; serves canned responses per URL."""

    def __init__(self, responses: Optional[Dict[str, Tuple[int, str]]] = None):
        self.responses = dict(responses or {})
        self.calls: List[Dict] = []

    def set_feed(self, url: str, body: str, status_code: int = 200) -> None:
        self.responses[url] = (status_code, body)

    def get(self, url, headers=None, timeout=None):
        self.calls.append({"url": url, "headers": headers, "timeout": timeout})
        status_code, body = self.responses.get(url, (404, ""))
        reason = "OK" if status_code < 400 else "Not Found" if status_code == 404 else "Error"
        return FakeResponse(status_code=status_code, text=body, reason=reason)
