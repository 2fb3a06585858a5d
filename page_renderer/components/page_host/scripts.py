"""JavaScript injected into pages by the readiness and capture strategies."""
import json

from page_renderer.components.page_host.base import SEND_BINDING

TARGET_SIZE_CHANNEL = "target_size_received"
DOM_READY_CHANNEL = "domready"


def target_size_script(element_id: str) -> str:
    """
    Reports the box size of `element_id` once the document is complete.
    A missing element reports `{width: 0, height: 0}`.
    """
    return f"""
(() => {{
  if (window.__pageRendererTargetSize) return;
  window.__pageRendererTargetSize = true;
  var domReady = function(callback) {{
    document.readyState === "complete" ? callback() : window.addEventListener("load", callback, {{ once: true }});
  }};
  domReady(function() {{
    var target = document.getElementById({json.dumps(element_id)});
    var size = target != null
      ? {{ width: target.offsetWidth, height: target.offsetHeight }}
      : {{ width: 0, height: 0 }};
    window.{SEND_BINDING}({json.dumps(TARGET_SIZE_CHANNEL)}, size);
  }});
}})()
"""


DOM_READY_SCRIPT = f"""
(() => {{
  if (window.__pageRendererDomReady) return;
  window.__pageRendererDomReady = true;
  var domReady = function(callback) {{
    document.readyState === "complete" ? callback() : window.addEventListener("load", callback, {{ once: true }});
  }};
  domReady(function() {{
    window.{SEND_BINDING}({json.dumps(DOM_READY_CHANNEL)});
  }});
}})()
"""


REMOVE_PRINT_MEDIA_SCRIPT = """
(() => {
  var sheets = document.querySelectorAll('link[rel="stylesheet"][media="print"]');
  Array.prototype.forEach.call(sheets, function(s) { s.remove(); });
  return sheets.length;
})()
"""
