"""
In-page scripts run by the render pipeline.

Each script is a JavaScript function expression; the session backend decides
how arguments and Promise results are passed.
"""

# Resolves once every image inside the card, plus every CSS background image
# in the document, has finished loading or failed. Resolves with the count.
WAIT_FOR_IMAGES = r"""
(card, imageSelector) => new Promise((resolve) => {
  const watch = Array.from(card.querySelectorAll(imageSelector));

  document.querySelectorAll("body *").forEach((el) => {
    if (el.tagName === "IMG") return;
    const background = window.getComputedStyle(el).getPropertyValue("background-image");
    const match = /url\(\s*["']?(.*?)["']?\s*\)/.exec(background || "");
    if (!match || !match[1]) return;
    const img = new Image();
    img.src = match[1];
    watch.push(img);
  });

  let pending = watch.length;
  if (pending === 0) {
    resolve(0);
    return;
  }
  const finishOne = () => {
    pending -= 1;
    if (pending === 0) resolve(watch.length);
  };
  watch.forEach((img) => {
    if (img.complete) {
      finishOne();
      return;
    }
    img.addEventListener("load", finishOne, { once: true });
    img.addEventListener("error", finishOne, { once: true });
  });
})
"""

# Presentation-only cleanup of the card and the page around it.
CLEAN_UP_PAGE = r"""
(card, options) => {
  card.style.border = "none";

  if (options.activeSelector) {
    card.querySelectorAll(options.activeSelector).forEach((el) => {
      el.classList.remove(options.activeClass);
    });
  }

  const rules = [];
  options.hiddenSelectors.forEach((selector) => {
    rules.push(selector + " { display: none !important; }");
  });
  options.backgroundSelectors.forEach((selector) => {
    rules.push(selector + " { background: none !important; }");
  });
  const style = document.createElement("style");
  style.setAttribute("data-dynamic-shot", "cleanup");
  style.textContent = rules.join("\n");
  document.head.appendChild(style);

  if (options.overlaySelector) {
    const overlay = document.querySelector(options.overlaySelector);
    if (overlay) overlay.style.position = options.overlayPosition;
  }

  if (options.pageScale && options.pageScale !== 1) {
    document.body.style.scale = String(options.pageScale);
  }
  return rules.length;
}
"""
