"""Browser-side bridge bundle injected into each frame's isolated world."""

# Bumped whenever the shape of anything the bundle returns changes
BRIDGE_VERSION = "0.1.0"

FACTORY_GLOBAL = "__RefBridgeFactory__"

BRIDGE_BUNDLE = """
(() => {
    const VERSION = "%(version)s";
    const existing = globalThis.%(factory)s;
    if (existing && existing.version === VERSION) {
        return;
    }

    // Node ids are stable for the lifetime of this isolated world
    const ids = new WeakMap();
    const nodes = new Map();
    let nextId = 1;

    function idOf(el) {
        let id = ids.get(el);
        if (id === undefined) {
            id = nextId++;
            ids.set(el, id);
            nodes.set(id, new WeakRef(el));
        }
        return id;
    }

    function lookup(id) {
        const ref = nodes.get(id);
        const el = ref ? ref.deref() : undefined;
        if (!el) {
            nodes.delete(id);
            return null;
        }
        return el;
    }

    function attrsOf(el) {
        const out = {};
        for (const attr of Array.from(el.attributes || [])) {
            out[attr.name] = attr.value;
        }
        return out;
    }

    function captureNode(node, slotted) {
        if (node.nodeType === Node.TEXT_NODE) {
            return { k: "text", text: node.nodeValue || "", slotted: slotted };
        }
        if (node.nodeType === Node.ELEMENT_NODE) {
            return captureElement(node, slotted);
        }
        return null;
    }

    function captureChildren(parent, out) {
        for (const child of Array.from(parent.childNodes)) {
            const captured = captureNode(child, !!child.assignedSlot);
            if (captured) {
                out.push(captured);
            }
        }
    }

    function captureElement(el, slotted) {
        const tag = el.tagName.toLowerCase();
        const style = getComputedStyle(el);
        const out = {
            k: "element",
            id: idOf(el),
            tag: tag,
            attrs: attrsOf(el),
            display: style.display,
            visibility: style.visibility,
            slotted: slotted,
            children: [],
        };

        if (tag === "input" || tag === "textarea" || tag === "select") {
            out.value = String(el.value == null ? "" : el.value);
        }
        if (tag === "input" && (el.type === "checkbox" || el.type === "radio")) {
            out.checked = el.indeterminate ? "mixed" : !!el.checked;
        }
        if (tag === "option") {
            out.selected = !!el.selected;
        }
        if ("disabled" in el) {
            out.disabled = !!el.disabled;
        }

        captureChildren(el, out.children);

        if (el.shadowRoot) {
            out.shadow = [];
            captureChildren(el.shadowRoot, out.shadow);
        }

        if (tag === "slot" && typeof el.assignedNodes === "function") {
            out.assigned = [];
            for (const assigned of el.assignedNodes({ flatten: true })) {
                if (assigned.nodeType === Node.ELEMENT_NODE) {
                    out.assigned.push({ k: "element", id: idOf(assigned) });
                } else if (assigned.nodeType === Node.TEXT_NODE) {
                    out.assigned.push({ k: "text", text: assigned.nodeValue || "" });
                }
            }
        }
        return out;
    }

    function deepActiveElement() {
        let active = document.activeElement;
        while (active && active.shadowRoot && active.shadowRoot.activeElement) {
            active = active.shadowRoot.activeElement;
        }
        return active;
    }

    function liveElement(id) {
        const el = lookup(id);
        if (!el) {
            return { el: null, failure: { ok: false, reason: "missing" } };
        }
        if (!el.isConnected) {
            return { el: null, failure: { ok: false, reason: "detached" } };
        }
        return { el: el, failure: null };
    }

    function setValue(el, text) {
        if (el.isContentEditable) {
            el.textContent = text;
            return;
        }
        const descriptor = Object.getOwnPropertyDescriptor(Object.getPrototypeOf(el), "value");
        if (descriptor && descriptor.set) {
            descriptor.set.call(el, text);
        } else {
            el.value = text;
        }
    }

    function create(config) {
        const settings = Object.assign({}, config || {});
        return {
            version: VERSION,
            config: settings,

            capture() {
                const active = deepActiveElement();
                return {
                    url: location.href,
                    activeId: active && active !== document.body ? idOf(active) : null,
                    body: document.body ? captureElement(document.body, false) : null,
                };
            },

            click(id) {
                const { el, failure } = liveElement(id);
                if (failure) {
                    return failure;
                }
                if (typeof el.scrollIntoView === "function") {
                    el.scrollIntoView({ block: "center", inline: "center" });
                }
                el.click();
                return { ok: true };
            },

            type(id, text) {
                const { el, failure } = liveElement(id);
                if (failure) {
                    return failure;
                }
                el.focus();
                setValue(el, text);
                el.dispatchEvent(new Event("input", { bubbles: true }));
                el.dispatchEvent(new Event("change", { bubbles: true }));
                return { ok: true };
            },

            inspect(id) {
                const { el, failure } = liveElement(id);
                if (failure) {
                    return failure;
                }
                const rect = el.getBoundingClientRect();
                const style = getComputedStyle(el);
                return {
                    ok: true,
                    tag: el.tagName.toLowerCase(),
                    text: (el.textContent || "").trim(),
                    attrs: attrsOf(el),
                    visible: rect.width > 0 && rect.height > 0 && style.visibility !== "hidden",
                    bounds: { x: rect.x, y: rect.y, width: rect.width, height: rect.height },
                };
            },

            isConnected(id) {
                const el = lookup(id);
                return !!(el && el.isConnected);
            },

            idOf(el) {
                return el && el.nodeType === Node.ELEMENT_NODE ? idOf(el) : null;
            },
        };
    }

    Object.defineProperty(globalThis, "%(factory)s", {
        value: Object.freeze({ version: VERSION, create: create }),
        writable: false,
        enumerable: false,
        configurable: true,
    });
})();
""" % {"version": BRIDGE_VERSION, "factory": FACTORY_GLOBAL}

# Reports the version of the factory living in a world, or null
FACTORY_VERSION_EXPRESSION = (
    f"(function(){{ const f = globalThis.{FACTORY_GLOBAL}; return f ? f.version : null; }})()"
)

# Called with the bridge instance as ``this``; the method name is the first argument
CALL_BRIDGE_METHOD = """
function(method, ...args) {
    const fn = this && this[method];
    if (typeof fn !== 'function') {
        throw new Error('Bridge method not found: ' + method);
    }
    return fn.apply(this, args);
}
"""


def create_instance_expression(config_json: str) -> str:
    """Expression creating a bridge instance from the factory with the given JSON config."""
    return f"globalThis.{FACTORY_GLOBAL}.create({config_json})"
