#!/usr/bin/env python3
"""
spibirds-metadata Main Script
Converts SPI-Birds metadata submissions to EML 2.2.0 and merges converted
studies into the site, study and species reference tables.

Commands:
    convert    submission -> EML document + conversion result file
    merge      conversion result -> reference tables (archived first)
    add-party  extra creator/metadata provider/contact -> existing EML document
"""

import argparse
import logging
import os
import traceback

from .cli_output.cli_ui import console, print_header, print_registered_ids, print_separator, print_usage
from .config import load_config
from .create_EML.add_party import PARTY_ROLES, add_party_to_eml, create_party
from .create_EML.EML_builder import build_eml_document, eml_file_name, site_centroid, submitted_species
from .create_EML.EML_writer import write_eml
from .create_EML.habitat_codes import load_habitat_table
from .disambiguation import TerminalDisambiguator
from .html_reporter import HTMLReporter
from .identifier_assignment import assign_site_and_study, assign_study_uuid
from .reference_tables.table_merger import load_conversion_result, merge_conversion, write_conversion_result
from .reference_tables.table_repository import CsvTableRepository
from .submission_record import read_submissions, select_submission
from .taxonomic_assignment.EURING_matching import load_euring_codes
from .taxonomic_assignment.taxa_assignment_manager import resolve_all
from .taxonomic_assignment.vernacular_names import attach_common_name


def load_submission(params, reporter, disambiguator, row_number=None, mode=None):
    """Read the submissions sheet and pick the entry to convert"""
    reporter.add_section("Loading Submission", level=2)
    try:
        records = read_submissions(params['submissions_file'])
        reporter.add_text(f"Found {len(records)} metadata entries in {params['submissions_file']}")
        record = select_submission(records, disambiguator, row_number=row_number, mode=mode)
        reporter.add_success(f"Selected entry at row {record.row_number}: {record.study_site_name}, "
                             f"{record.study_site_country}")
        return record
    except Exception as e:
        error_msg = f"Error loading submission: {str(e)}"
        reporter.add_error(error_msg)
        raise


def register_identifiers(record, repository, reporter, disambiguator):
    """siteID and studyID from the reference tables (asking the operator), plus the study UUID"""
    reporter.add_section("Registering Identifiers", level=2)
    try:
        ids = assign_site_and_study(record.study_site_name, repository.sites, repository.studies, disambiguator)
        ids['studyUUID'] = assign_study_uuid(ids['studyID'], repository.studies)
        print_registered_ids(ids)
        reporter.add_list([f"{name}: {value}" for name, value in ids.items()], "Registered identifiers:")
        return ids
    except Exception as e:
        reporter.add_error(f"Error registering identifiers: {str(e)}")
        raise


def resolve_taxa(record, params, reporter, disambiguator):
    """Classify every submitted species and attach a common name"""
    reporter.add_section("Taxonomic Assignment", level=2)
    try:
        names = submitted_species(record)
        reporter.add_list(names, "Submitted species:")
        euring_codes = load_euring_codes(params['euring_codes_path'])

        taxa = resolve_all(names, disambiguator, euring_codes=euring_codes, timeout=params['request_timeout'])
        for classification in taxa:
            attach_common_name(classification, disambiguator, timeout=params['request_timeout'])

        resolved = {t.submitted_name for t in taxa}
        for name in names:
            if name not in resolved:
                reporter.add_warning(f"'{name}' could not be resolved as a species or subspecies and is left out")
        reporter.add_list([f"{t.submitted_name} -> {t.accepted_name} ({t.common_name}), "
                           f"{len(t.records)} rank records" for t in taxa], "Resolved taxa:")
        return taxa
    except Exception as e:
        reporter.add_error(f"Error during taxonomic assignment: {str(e)}")
        raise


def create_eml(record, taxa, ids, params, reporter):
    """Build, write and validate the EML document"""
    reporter.add_section("Creating EML", level=2)
    try:
        habitat_table = load_habitat_table(params['habitat_codes_path'])
        document = build_eml_document(record, taxa, ids, habitat_table)
        eml_path = write_eml(document, params['eml_dir'], eml_file_name(document))
        reporter.add_success(f"Schema-valid EML document written to {eml_path}")
        return document, eml_path
    except Exception as e:
        reporter.add_error(f"Error creating EML: {str(e)}")
        raise


def conversion_result(record, taxa, ids, document):
    """Everything the merge step needs, in plain YAML-friendly types"""
    lat, lon = site_centroid(document)
    return {
        'studyID': ids['studyID'],
        'studyUUID': ids['studyUUID'],
        'siteID': ids['siteID'],
        'siteName': record.study_site_name,
        'custodianName': record.creator_organization_name,
        'country': record.study_site_country,
        'lat': float(lat),
        'lon': float(lon),
        'taxa': [t.to_dict() for t in taxa],
    }


def run_convert(params, reporter, disambiguator, row_number=None, mode=None):
    print_separator("Convert metadata submission")
    record = load_submission(params, reporter, disambiguator, row_number=row_number, mode=mode)

    repository = CsvTableRepository(params['tables_dir'], params['archive_dir']).load()
    ids = register_identifiers(record, repository, reporter, disambiguator)
    taxa = resolve_taxa(record, params, reporter, disambiguator)
    document, eml_path = create_eml(record, taxa, ids, params, reporter)

    result_path = os.path.splitext(eml_path)[0] + '.yaml'
    write_conversion_result(conversion_result(record, taxa, ids, document), result_path)
    reporter.add_success(f"Conversion result written to {result_path}")
    console.print(f"EML: {eml_path}", style="bold navy_blue")
    console.print(f"Next step: python main.py merge {result_path}", style="dim")
    return eml_path, result_path


def run_merge(params, reporter, disambiguator, result_path):
    print_separator("Merge conversion result into reference tables")
    reporter.add_section("Merging Reference Tables", level=2)
    try:
        result = load_conversion_result(result_path)
        print_registered_ids({k: result[k] for k in ('siteID', 'studyID', 'studyUUID', 'custodianName')})
        repository = CsvTableRepository(params['tables_dir'], params['archive_dir'])
        summary = merge_conversion(result, repository, disambiguator)
        reporter.add_list([f"{key}: {value}" for key, value in summary.items()], "Merge summary:")
        reporter.add_dataframe(repository.species.tail(max(len(summary['species_added']), 1)),
                               "Species table (last rows)")
        reporter.add_success(f"Reference tables updated in {params['tables_dir']}")
        return summary
    except Exception as e:
        reporter.add_error(f"Error merging {result_path}: {str(e)}")
        raise


def run_add_party(reporter, disambiguator, eml_path, add_to):
    print_separator("Add party to EML document")
    reporter.add_section("Adding Party", level=2)
    try:
        party = create_party(disambiguator)
        party_id = add_party_to_eml(eml_path, party, add_to)
        reporter.add_success(f"Added {party_id} ({', '.join(add_to)}) to {eml_path}")
        return party_id
    except Exception as e:
        reporter.add_error(f"Error adding party to {eml_path}: {str(e)}")
        raise


def build_parser():
    parser = argparse.ArgumentParser(prog="spibirds-metadata",
                                     description="SPI-Birds metadata submission to EML converter")
    parser.add_argument("--config", default="config.yaml", help="Path to the YAML configuration")
    subparsers = parser.add_subparsers(dest="command")

    convert = subparsers.add_parser("convert", help="Convert a metadata submission to EML")
    selection = convert.add_mutually_exclusive_group()
    selection.add_argument("--row", type=int, help="Row number of the entry in the submissions sheet")
    selection.add_argument("--latest-submitted", action="store_const", const="submitted", dest="mode",
                           help="Convert the most recently submitted entry")
    selection.add_argument("--latest-updated", action="store_const", const="updated", dest="mode",
                           help="Convert the most recently updated entry")

    merge = subparsers.add_parser("merge", help="Merge a conversion result into the reference tables")
    merge.add_argument("result", help="Conversion result YAML written by convert")

    add_party = subparsers.add_parser("add-party", help="Add a party to an existing EML document")
    add_party.add_argument("eml_file", help="EML document to amend")
    add_party.add_argument("--to", nargs="+", required=True, choices=list(PARTY_ROLES), dest="add_to",
                           help="Role(s) the party should be added to")
    return parser


def main(argv=None):
    """Main execution function"""
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
    args = build_parser().parse_args(argv)

    print_header()
    if args.command is None:
        print_usage()
        return

    params = load_config(args.config)
    disambiguator = TerminalDisambiguator(console)

    os.makedirs(params['output_dir'], exist_ok=True)
    report_path = os.path.join(params['output_dir'], f"spibirds_metadata_report_{args.command}.html")
    reporter = HTMLReporter(report_path)
    reporter.add_section(f"spibirds-metadata {args.command}", level=1)

    try:
        if args.command == "convert":
            run_convert(params, reporter, disambiguator, row_number=args.row, mode=args.mode)
        elif args.command == "merge":
            run_merge(params, reporter, disambiguator, args.result)
        elif args.command == "add-party":
            run_add_party(reporter, disambiguator, args.eml_file, args.add_to)

        if reporter.warnings:
            reporter.set_status("WARNING")
        else:
            reporter.set_status("SUCCESS")

    except Exception as e:
        console.print(f"Error during processing: {str(e)}", style="bold red")
        reporter.add_text("Full traceback:")
        reporter.add_text(traceback.format_exc())
        reporter.set_status("FAILED", f"Pipeline failed: {str(e)}")
        raise

    finally:
        if params['report_enabled']:
            reporter.save()
            logging.info(f"HTML report saved: {reporter.filename}")


if __name__ == "__main__":
    main()
