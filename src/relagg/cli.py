"""
Aggregation CLI for relagg.
"""

import argparse
import os

from relagg._io import RunControl, read_data, to_frame
from relagg.convenience import reaggregate
from relagg.relation import MappingFile
from relagg.utils import logger, pd_write


def read_args(argv=None):
    # construct parser
    descr = """
    (Dis-)aggregate data in long table format with a mapping.

    Every row of the input holds one value; the columns for the spatial and
    temporal axis and the value column are configured in the run control, all
    remaining columns form the data axis.

    Example usage:

    relagg input.csv --mapping regionmapping.csv --to region --weight pop.csv
    """
    parser = argparse.ArgumentParser(
        description=descr, formatter_class=argparse.RawDescriptionHelpFormatter
    )
    input_file = "Input data file."
    parser.add_argument("input_file", help=input_file)
    mapping = "Mapping file (csv or xlsx)."
    parser.add_argument("--mapping", help=mapping, required=True)
    weight = "Weight data file, same format as the input."
    parser.add_argument("--weight", help=weight, default=None)
    from_ = "Source column of the mapping."
    parser.add_argument("--from", dest="from_", help=from_, default=None)
    to = "Target column(s) of the mapping, several can be joined with '+'."
    parser.add_argument("--to", help=to, default=None)
    dim = "Aggregated axis (1, 2, 3), sub-dimension (eg. 3.2) or its name."
    parser.add_argument("--dim", help=dim, default=None)
    wdim = "Aggregated axis of the weight."
    parser.add_argument("--wdim", help=wdim, default=None)
    partrel = "Allow partial overlap between mapping and data."
    parser.add_argument("--partrel", help=partrel, action="store_true", default=None)
    negative_weight = "Treatment of negative weights."
    parser.add_argument(
        "--negative-weight",
        help=negative_weight,
        choices=["allow", "warn", "stop"],
        default=None,
    )
    mixed = "Sum up weight columns which are entirely missing."
    parser.add_argument(
        "--mixed-aggregation", help=mixed, action="store_true", default=None
    )
    rc = "Runcontrol YAML file."
    parser.add_argument("--rc", help=rc, default=None)
    output = "Output file name, defaults to <input>_aggregated.csv."
    parser.add_argument("--output", help=output, default=None)

    args = parser.parse_args(argv)
    return args


def aggregate_files(
    inf,
    mapping,
    weight=None,
    rc=None,
    output=None,
    return_result=False,
    write_output=True,
    **options,
):
    # check files exist
    check = [inf, mapping, weight, rc]
    for f in check:
        if f and not os.path.exists(f):
            raise OSError(f"{f} does not exist on the filesystem.")

    rc = RunControl(rc=rc)
    rc.update_aggregate(**options)

    io = rc["io"]
    x = read_data(inf, **io)
    if x.size == 0:
        raise ValueError("Input data is empty")
    w = read_data(weight, **io) if weight else None

    out = reaggregate(x, MappingFile(mapping), weight=w, rc=rc.store)

    if write_output:
        fname = output or f"{os.path.splitext(inf)[0]}_aggregated.csv"
        logger().info(f"Writing result to: {fname}")
        pd_write(to_frame(out, io["value"]), fname, index=False)

    if return_result:
        return out


def main(argv=None):
    # parse cli
    args = read_args(argv)

    # run program
    aggregate_files(
        args.input_file,
        args.mapping,
        weight=args.weight,
        rc=args.rc,
        output=args.output,
        from_=args.from_,
        to=args.to,
        dim=args.dim,
        wdim=args.wdim,
        partrel=args.partrel,
        negative_weight=args.negative_weight,
        mixed_aggregation=args.mixed_aggregation,
    )


if __name__ == "__main__":
    main()
