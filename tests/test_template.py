import textwrap

import pytest

from markengine.template import BarcodeField, BubbleField, Point, load_template, template_from_dict


def _write(tmp_path, name, text):
    p = tmp_path / name
    p.write_text(textwrap.dedent(text), encoding="utf-8")
    return p


def test_load_yaml_template_with_corners_and_rects(tmp_path):
    p = _write(tmp_path, "form.yaml", """
        name: survey-a
        corners:
          top_left: [0, 0]
          top_right: [300, 0]
          bottom_left: [0, 400]
          bottom_right: [300, 400]
        fields:
          - id: code
            type: barcode
            rect: [10, 10, 200, 40]
          - id: q1-a
            question: q1
            value: A
            corners:
              top_left: {x: 20, y: 100}
              top_right: {x: 40, y: 100}
              bottom_left: {x: 20, y: 120}
              bottom_right: {x: 40, y: 120}
          - id: r1-a
            type: bubble
            question: q2
            value: A
            answer_row_group: row1
            rect: [20, 150, 20, 20]
    """)
    tpl = load_template(p)

    assert tpl.name == "survey-a"
    assert tpl.corners.bottom_right == Point(300, 400)
    assert [f.id for f in tpl.fields] == ["code", "q1-a", "r1-a"]
    assert isinstance(tpl.fields[0], BarcodeField)
    q1 = tpl.fields[1]
    assert isinstance(q1, BubbleField)
    assert (q1.corners.width, q1.corners.height) == (20, 20)
    assert q1.row_group is None
    assert tpl.fields[2].row_group == "row1"
    assert [f.id for f in tpl.bubble_fields] == ["q1-a", "r1-a"]


def test_json_template_name_defaults_to_file_stem(tmp_path):
    p = _write(tmp_path, "exam.json", """
        {"corners": {"top_left": [0, 0], "top_right": [50, 0],
                     "bottom_left": [0, 50], "bottom_right": [50, 50]},
         "fields": []}
    """)
    assert load_template(p).name == "exam"


def test_empty_row_group_means_standalone():
    tpl = template_from_dict({
        "rect": [0, 0, 100, 100],
        "fields": [{"id": "a", "question": "q", "value": "1", "answer_row_group": "", "rect": [1, 1, 5, 5]}],
    })
    assert tpl.fields[0].row_group is None


@pytest.mark.parametrize("cfg, message", [
    ({"rect": [0, 0, 100, 100], "fields": [
        {"id": "a", "question": "q", "value": "1", "rect": [1, 1, 5, 5]},
        {"id": "a", "question": "q", "value": "2", "rect": [10, 1, 5, 5]},
    ]}, "Duplicate field id"),
    ({"rect": [0, 0, 100, 100], "fields": [
        {"id": "a", "question": "q", "value": "1", "rect": [90, 90, 20, 20]},
    ]}, "outside the template"),
    ({"rect": [0, 0, 100, 100], "fields": [{"id": "a", "type": "checkbox", "rect": [1, 1, 5, 5]}]},
     "unknown type"),
    ({"rect": [0, 0, 100, 100], "fields": [{"id": "a", "rect": [1, 1, 5, 5]}]}, "need 'question'"),
    ({"corners": {"top_left": [0, 0], "top_right": [0, 0], "bottom_left": [0, 10], "bottom_right": [0, 10]}},
     "positive area"),
    ({"fields": []}, "corners"),
])
def test_invalid_templates_are_rejected(cfg, message):
    with pytest.raises(ValueError, match=message):
        template_from_dict(cfg)
