from django import forms

from .references import parse_cell_reference


class EvaluateForm(forms.Form):
    """Payload of a single formula evaluation."""
    formula = forms.CharField(strip=False, required=False)
    cell_id = forms.CharField(max_length=16)

    def clean_cell_id(self):
        cell_id = self.cleaned_data.get('cell_id', '').strip().upper()
        if parse_cell_reference(cell_id) is None:
            raise forms.ValidationError(f"'{cell_id}' is not a cell reference.")
        return cell_id


class RangeForm(forms.Form):
    """Payload of a range expansion."""
    range = forms.CharField(max_length=64)

    def clean_range(self):
        value = self.cleaned_data.get('range', '').strip().upper()
        parts = value.split(':')
        if len(parts) != 2 or any(parse_cell_reference(part) is None for part in parts):
            raise forms.ValidationError(f"'{value}' is not a range like A1:B3.")
        return value


class RecalculateForm(forms.Form):
    """Optional edited cell of a recalculation request."""
    edited_cell = forms.CharField(max_length=16, required=False)

    def clean_edited_cell(self):
        cell_id = (self.cleaned_data.get('edited_cell') or '').strip().upper()
        if cell_id and parse_cell_reference(cell_id) is None:
            raise forms.ValidationError(f"'{cell_id}' is not a cell reference.")
        return cell_id
