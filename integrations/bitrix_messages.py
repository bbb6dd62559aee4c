"""
Centralized Bitrix24 text templates with i18n support.

Usage:
    from integrations.bitrix_messages import get_message

    title = get_message("record_title", product_name="Borodinsky", batch_number="B100")
"""

from typing import Optional

from config import settings

MESSAGES = {
    "ru": {
        "record_title": "Проверка качества: {product_name} - Партия №{batch_number}",
        "initial_comment": "Первичные заметки: {notes}",
        "no_notes": "Нет",
        "status_passed": '<span style="color: green;">ПРОЙДЕНО</span>',
        "status_not_passed": '<span style="color: red;">БРАК</span>',
        "timeline_comment": """<h3>Детальный отчет по проверке</h3>
<br>
<b>Статус проверки:</b> {status}
<br>
<b>Средний балл:</b> {average_score} / 5.0
<br>
<hr>
<b>Замеры (В/Ш/Д):</b> {height} / {width} / {length} мм
<br>
<b>Эталон (В/Ш/Д):</b> ({height_min}–{height_max}) / ({width_min}–{width_max}) / ({length_min}–{length_max}) мм
<br>
<hr>
<b>Оценки:</b>
<ul>
<li>Колер: {color_rating}/5</li>
<li>Мякиш: {crumb_rating}/5</li>
<li>Вкус: {taste_rating}/5</li>
</ul>
<hr>
<b>Заметки исполнителя:</b>
<br>
<i>{notes}</i>""",
    },
    "en": {
        "record_title": "Quality check: {product_name} - Batch #{batch_number}",
        "initial_comment": "Initial notes: {notes}",
        "no_notes": "None",
        "status_passed": '<span style="color: green;">PASSED</span>',
        "status_not_passed": '<span style="color: red;">REJECTED</span>',
        "timeline_comment": """<h3>Detailed inspection report</h3>
<br>
<b>Status:</b> {status}
<br>
<b>Average score:</b> {average_score} / 5.0
<br>
<hr>
<b>Measured (H/W/L):</b> {height} / {width} / {length} mm
<br>
<b>Reference (H/W/L):</b> ({height_min}–{height_max}) / ({width_min}–{width_max}) / ({length_min}–{length_max}) mm
<br>
<hr>
<b>Ratings:</b>
<ul>
<li>Crust colour: {color_rating}/5</li>
<li>Crumb: {crumb_rating}/5</li>
<li>Taste: {taste_rating}/5</li>
</ul>
<hr>
<b>Packer notes:</b>
<br>
<i>{notes}</i>""",
    },
}


def get_message(key: str, lang: Optional[str] = None, **kwargs) -> str:
    """
    Get a formatted template.

    Args:
        key: Template key
        lang: Language code (defaults to settings.crm_language)
        **kwargs: Template values

    Returns:
        Formatted string; falls back to English, then to the key itself
    """
    lang = lang or settings.crm_language
    messages = MESSAGES.get(lang, MESSAGES["en"])
    template = messages.get(key) or MESSAGES["en"].get(key, key)
    return template.format(**kwargs) if kwargs else template
