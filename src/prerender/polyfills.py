"""Browser compatibility shims for the synthetic window.

Each shim is a small capability record: a name plus a JavaScript function
``(win) => true | false | "reason"`` that installs one feature only when it
is absent. ``true`` means installed, ``false`` means a native implementation
was already present, and a string means a prerequisite was missing and the
shim was skipped.

The shims are composed into one init script that is attached to the
browser context before any page script runs, so every document starts with
the full set in place. The script is idempotent and never throws: a failing
shim is recorded as skipped and the rest still install.
"""

import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

logger = logging.getLogger("prerender.render")

REPORT_GLOBAL = "__prerenderShims"


@dataclass(frozen=True, slots=True)
class Shim:
    """One guarded browser feature."""

    name: str
    source: str


@dataclass(frozen=True, slots=True)
class ShimInstallationSkip:
    """A shim that could not install because a prerequisite was absent.

    Not an error: rendering continues, the skip is only logged.
    """

    name: str
    reason: str


@dataclass(frozen=True, slots=True)
class ShimReport:
    """What the init script did in one window."""

    installed: tuple[str, ...] = ()
    present: tuple[str, ...] = ()
    skipped: tuple[ShimInstallationSkip, ...] = ()

    @classmethod
    def from_js(cls, raw: Mapping[str, Any] | None) -> "ShimReport":
        if not raw:
            return cls()
        return cls(
            installed=tuple(raw.get("installed", ())),
            present=tuple(raw.get("present", ())),
            skipped=tuple(
                ShimInstallationSkip(name=item["name"], reason=item["reason"])
                for item in raw.get("skipped", ())
            ),
        )

    def log(self) -> None:
        if self.installed:
            logger.debug("Installed shims: %s", ", ".join(self.installed))
        for skip in self.skipped:
            logger.debug("Skipped shim %s: %s", skip.name, skip.reason)


# -- Shim sources --

ELEMENT_BASE = Shim(
    "element-base",
    """function (win) {
  if (win.HTMLElement) return false;
  if (!win.Element) return "Element is missing";
  win.HTMLElement = win.Element;
  return true;
}""",
)

INNER_TEXT = Shim(
    "inner-text",
    """function (win) {
  var proto = win.HTMLElement && win.HTMLElement.prototype;
  if (!proto) return "HTMLElement.prototype is missing";
  if (Object.getOwnPropertyDescriptor(proto, "innerText")) return false;
  Object.defineProperty(proto, "innerText", {
    get: function () { return this.textContent; },
    set: function (v) { this.textContent = v == null ? "" : String(v); },
    configurable: true,
    enumerable: true
  });
  return true;
}""",
)

SHADOW_ROOT = Shim(
    "shadow-root",
    """function (win) {
  if (win.ShadowRoot) return false;
  var proto = win.HTMLElement && win.HTMLElement.prototype;
  if (!proto) return "HTMLElement.prototype is missing";
  var ShadowRoot = function ShadowRoot() {};
  ShadowRoot.prototype = Object.create(proto);
  win.ShadowRoot = ShadowRoot;
  if (!proto.attachShadow) {
    proto.attachShadow = function (options) {
      var shadow = new win.ShadowRoot();
      shadow.mode = (options && options.mode) || "open";
      shadow.host = this;
      Object.defineProperty(this, "shadowRoot", {
        value: shadow, configurable: true, writable: true
      });
      return shadow;
    };
  }
  return true;
}""",
)

MATCH_MEDIA = Shim(
    "match-media",
    """function (win) {
  if (typeof win.matchMedia === "function") return false;
  win.matchMedia = function (query) {
    return {
      matches: false,
      media: String(query),
      onchange: null,
      addListener: function () {},
      removeListener: function () {},
      addEventListener: function () {},
      removeEventListener: function () {},
      dispatchEvent: function () { return false; }
    };
  };
  return true;
}""",
)

MATCHES = Shim(
    "matches",
    """function (win) {
  var proto = win.Element && win.Element.prototype;
  if (!proto) return "Element.prototype is missing";
  if (proto.matches) return false;
  var vendor = proto.msMatchesSelector || proto.webkitMatchesSelector || proto.mozMatchesSelector;
  if (!vendor) return "no selector matching implementation";
  proto.matches = vendor;
  return true;
}""",
)

CLOSEST = Shim(
    "closest",
    """function (win) {
  var proto = win.Element && win.Element.prototype;
  if (!proto) return "Element.prototype is missing";
  if (proto.closest) return false;
  proto.closest = function (selector) {
    var doc = this.ownerDocument || win.document;
    var el = this;
    if (!doc || !doc.documentElement || !doc.documentElement.contains(el)) return null;
    do {
      if (el.matches(selector)) return el;
      el = el.parentElement || el.parentNode;
    } while (el !== null && el.nodeType === 1);
    return null;
  };
  return true;
}""",
)

CONTAINS = Shim(
    "contains",
    """function (win) {
  var proto = win.HTMLElement && win.HTMLElement.prototype;
  if (!proto) return "HTMLElement.prototype is missing";
  if (proto.contains) return false;
  proto.contains = function (other) {
    var node = other;
    while (node != null) {
      if (node === this) return true;
      node = node.parentNode;
    }
    return false;
  };
  return true;
}""",
)

REMOVE = Shim(
    "remove",
    """function (win) {
  var proto = win.HTMLElement && win.HTMLElement.prototype;
  if (!proto) return "HTMLElement.prototype is missing";
  if (proto.remove) return false;
  proto.remove = function () {
    if (this.parentNode) this.parentNode.removeChild(this);
  };
  return true;
}""",
)

REPLACE_WITH = Shim(
    "replace-with",
    """function (win) {
  var proto = win.HTMLElement && win.HTMLElement.prototype;
  if (!proto) return "HTMLElement.prototype is missing";
  if (proto.replaceWith) return false;
  var doc = win.document;
  if (!doc || !doc.createDocumentFragment) return "document fragments are missing";
  proto.replaceWith = function () {
    var parent = this.parentNode;
    if (!parent) return;
    var i = arguments.length;
    var fragment = win.document.createDocumentFragment();
    while (i--) {
      var node = arguments[i];
      if (typeof node !== "object") {
        node = win.document.createTextNode(String(node));
      } else if (node.parentNode) {
        node.parentNode.removeChild(node);
      }
      fragment.insertBefore(node, fragment.firstChild);
    }
    parent.replaceChild(fragment, this);
  };
  return true;
}""",
)

SCROLL_TO = Shim(
    "scroll-to",
    """function (win) {
  var proto = win.HTMLElement && win.HTMLElement.prototype;
  if (!proto) return "HTMLElement.prototype is missing";
  if (proto.scrollTo) return false;
  proto.scrollTo = function () {};
  return true;
}""",
)

RESIZE_OBSERVER = Shim(
    "resize-observer",
    """function (win) {
  if (win.ResizeObserver) return false;
  var ResizeObserver = function ResizeObserver() {};
  ResizeObserver.prototype.observe = function () {};
  ResizeObserver.prototype.unobserve = function () {};
  ResizeObserver.prototype.disconnect = function () {};
  ResizeObserver.prototype.takeRecords = function () { return []; };
  win.ResizeObserver = ResizeObserver;
  return true;
}""",
)

INTERSECTION_OBSERVER = Shim(
    "intersection-observer",
    """function (win) {
  if (win.IntersectionObserver) return false;
  var IntersectionObserver = function IntersectionObserver() {};
  IntersectionObserver.prototype.observe = function () {};
  IntersectionObserver.prototype.unobserve = function () {};
  IntersectionObserver.prototype.disconnect = function () {};
  IntersectionObserver.prototype.takeRecords = function () { return []; };
  win.IntersectionObserver = IntersectionObserver;
  return true;
}""",
)

CUSTOM_EVENT = Shim(
    "custom-event",
    """function (win) {
  if (typeof win.CustomEvent === "function") return false;
  if (!win.document || typeof win.document.createEvent !== "function") {
    return "document.createEvent is missing";
  }
  var CustomEvent = function CustomEvent(type, params) {
    params = params || { bubbles: false, cancelable: false, detail: null };
    var evt = win.document.createEvent("CustomEvent");
    evt.initCustomEvent(
      type,
      !!params.bubbles,
      !!params.cancelable,
      params.detail === undefined ? null : params.detail
    );
    return evt;
  };
  if (win.Event) CustomEvent.prototype = win.Event.prototype;
  win.CustomEvent = CustomEvent;
  return true;
}""",
)

# element-base runs first so the HTMLElement guards below resolve.
DEFAULT_SHIMS: tuple[Shim, ...] = (
    ELEMENT_BASE,
    MATCH_MEDIA,
    INNER_TEXT,
    SHADOW_ROOT,
    MATCHES,
    CLOSEST,
    CONTAINS,
    REMOVE,
    REPLACE_WITH,
    CUSTOM_EVENT,
    SCROLL_TO,
    RESIZE_OBSERVER,
    INTERSECTION_OBSERVER,
)


def polyfill_script(shims: Iterable[Shim] = DEFAULT_SHIMS) -> str:
    """Compose *shims* into a single guarded, idempotent init script."""
    entries = ",\n".join(
        f"    {{ name: {json.dumps(shim.name)}, install: {shim.source} }}" for shim in shims
    )
    return f"""(function (win) {{
  if (!win || win.{REPORT_GLOBAL}) return;
  var report = {{ installed: [], present: [], skipped: [] }};
  var shims = [
{entries}
  ];
  for (var i = 0; i < shims.length; i++) {{
    var shim = shims[i];
    try {{
      var result = shim.install(win);
      if (result === true) report.installed.push(shim.name);
      else if (result === false) report.present.push(shim.name);
      else report.skipped.push({{ name: shim.name, reason: String(result) }});
    }} catch (err) {{
      report.skipped.push({{ name: shim.name, reason: String((err && err.message) || err) }});
    }}
  }}
  try {{
    Object.defineProperty(win, "{REPORT_GLOBAL}", {{ value: report, configurable: true }});
  }} catch (err) {{
    win.{REPORT_GLOBAL} = report;
  }}
}})(typeof window !== "undefined" ? window : undefined);
"""


class InitScriptTarget(Protocol):
    async def add_init_script(self, script: str | None = None, path: Any = None) -> None: ...


async def install_polyfills(
    target: InitScriptTarget, shims: Iterable[Shim] = DEFAULT_SHIMS
) -> None:
    """Attach the shim layer to a browser context or page.

    Runs in every new document of *target* before the document's own
    scripts.
    """
    await target.add_init_script(script=polyfill_script(shims))


async def read_report(page: Any) -> ShimReport:
    """Read back what the init script did in *page*'s main frame."""
    raw = await page.evaluate(f"() => window.{REPORT_GLOBAL} || null")
    return ShimReport.from_js(raw)
