import csv

import pandas as pd

METHOD_ORDER = ['std', 'std+t2', 'std+best', 'std+div', 'std+int']


def process_results(input_path, output_path):
    """
    Formats the batch results CSV: keeps the relevant columns, renames them,
    converts numeric values and rounds them.
    """
    df = pd.read_csv(input_path, engine='python', on_bad_lines='skip')

    df = df[[
        "Instance", "Method", "Exec Time (s)", "Total Iters",
        "Initial Obj", "Final Obj", "Improvement (%)", "Size"
    ]].rename(columns={
        "Exec Time (s)": "Time (s)",
        "Total Iters": "Iters",
        "Size": "Sets",
    })

    numeric_columns = ["Time (s)", "Initial Obj", "Final Obj", "Improvement (%)"]
    for col in numeric_columns:
        df[col] = pd.to_numeric(df[col], errors='coerce').round(2)

    df.to_csv(output_path, index=False, sep=',', quoting=csv.QUOTE_ALL)
    print(f"File '{output_path}' written.")
    return df


def format_num(x):
    try:
        return f"{float(x):.2f}"
    except (TypeError, ValueError):
        return "0.00"


def latex_rows(df: pd.DataFrame):
    """
    Yields LaTeX table rows, one block per instance. The first row of a block
    carries the instance name; the following rows leave it blank.
    """
    order = {method: i for i, method in enumerate(METHOD_ORDER)}
    df = df.assign(_order=df['Method'].map(order).fillna(len(order)))
    df = df.sort_values(by=['Instance', '_order'])

    for instance, group in df.groupby('Instance', sort=True):
        yield r"\addlinespace"
        for i, r in enumerate(group.to_dict('records')):
            prefix = str(instance).replace('_', r'\_') if i == 0 else ""
            yield (f"{prefix} & {r['Method']} & {format_num(r['Initial Obj'])} & {format_num(r['Final Obj'])} & "
                   f"{format_num(r['Improvement (%)'])} & {int(r['Sets'])} & {format_num(r['Time (s)'])} \\\\")


if __name__ == "__main__":
    formatted = process_results(
        "results/batch_run_results.csv",
        "results/formatted_results.csv",
    )
    for line in latex_rows(formatted):
        print(line)
