import logging
import shutil
from pathlib import Path
from zipfile import ZipFile

import pandas as pd

from flow_decomposition.network.network import Network


class NetworkWorker():
    """Network Worker reads network tables from disk.

    This module's purpose is to hide all the file system specific functions
    and allow for rather seemless import of a network. The tables of the
    network are read into the :class:`~flow_decomposition.network.Network`
    instance, which is validated afterwards.

    Based on *file_path* the module reads an Excel workbook (one sheet per
    table), a zip archive of csv files or a folder of csv files (one file per
    table, named like the table). Tables that are not part of the input are
    logged and initialized empty.

    Parameters
    ----------
    network : :class:`~flow_decomposition.network.Network`
        Network the tables are read into.
    file_path : pathlib.Path
        Filepath to input data.

    Attributes
    ----------
    missing_data : list
        Tables which were not part of the input.
    """

    def __init__(self, network, file_path):
        self.logger = logging.getLogger('log.flow_decomposition.network.NetworkWorker')
        self.network = network
        self.missing_data = []
        file_path = Path(file_path)

        if file_path.suffix in [".xlsx", ".xlsm"]:
            self.logger.info("Loading network from Excel file")
            self.read_xlsx(file_path)
        elif file_path.suffix == ".zip":
            self.logger.info("Loading network from zipped data archive")
            self.read_csv_zipped(file_path)
        elif file_path.is_dir():
            self.logger.info("Loading network from folder")
            self.read_csv_folder(file_path)
        else:
            self.logger.error("Filepath: %s", str(file_path))
            self.logger.error("Data Type not supported, only .xlsx, .zip or folder")
            raise TypeError(f"Network data type not supported: {file_path}")

        if self.missing_data:
            self.logger.info("Tables not part of the input: %s", ", ".join(self.missing_data))

    @staticmethod
    def _parse(raw_data):
        return raw_data.infer_objects()

    def read_xlsx(self, xlsx_filepath):
        """Read excel workbook at specified filepath.

        Parameters
        ----------
        xlsx_filepath : pathlib.Path
            Filepath to input excel file.
        """
        xlsx = pd.ExcelFile(xlsx_filepath, engine="openpyxl")
        for table in self.network.tables:
            if table in xlsx.sheet_names:
                raw_data = xlsx.parse(table, index_col=0)
                setattr(self.network, table, self._parse(raw_data))
            else:
                self.missing_data.append(table)

    def read_csv_folder(self, folder):
        """Read csv files from specified folder.

        Parameters
        ----------
        folder : pathlib.Path
            Path to folder containing the network .csv files.
        """
        for table in self.network.tables:
            try:
                raw_data = pd.read_csv(folder.joinpath(table + ".csv"), index_col=0)
                setattr(self.network, table, self._parse(raw_data))
            except FileNotFoundError as error_msg:
                self.missing_data.append(table)
                self.logger.debug(error_msg)

    def read_csv_zipped(self, zip_filepath):
        """Read csv files zipped into archive at specified filepath.

        Parameters
        ----------
        zip_filepath : pathlib.Path
            Filepath to .zip file.
        """
        with ZipFile(zip_filepath) as zip_archive:
            for table in self.network.tables:
                try:
                    with zip_archive.open(table + '.csv', 'r') as csv_file:
                        raw_data = pd.read_csv(csv_file, index_col=0)
                        setattr(self.network, table, self._parse(raw_data))
                except KeyError as error_msg:
                    self.missing_data.append(table)
                    self.logger.debug(error_msg)


def load_network(file_path, name=None, base_mva=100):
    """Read and validate a network from file.

    Parameters
    ----------
    file_path : str or pathlib.Path
        Excel workbook, zip archive of csv files or folder of csv files.
    name : str, optional
        Name of the network, defaults to the file name.
    base_mva : float, optional
        Base power of the p.u. impedances.

    Returns
    -------
    network : :class:`~flow_decomposition.network.Network`
    """
    file_path = Path(file_path)
    network = Network(name or file_path.stem, base_mva)
    NetworkWorker(network, file_path)
    network.validate()
    return network

def save_network(network, filepath, archive=False):
    """Write network tables to an excel file and a folder of csv files.

    Parameters
    ----------
    network : :class:`~flow_decomposition.network.Network`
        Network to save.
    filepath : pathlib.Path
        Filepath without extension. The excel file is written with suffix
        .xlsx, the csv files into the folder *filepath*.
    archive : bool, optional
        Zip the csv folder into *filepath*.zip and remove the folder.
    """
    logger = logging.getLogger('log.flow_decomposition.network.NetworkWorker')
    filepath = Path(filepath)
    logger.info("Writing network to Excel file %s", str(filepath.with_suffix(".xlsx")))
    with pd.ExcelWriter(filepath.with_suffix(".xlsx"), engine="openpyxl") as writer:
        for table in network.tables:
            getattr(network, table).to_excel(writer, sheet_name=table)

    logger.info("Writing network to csv files in %s", str(filepath))
    if not filepath.is_dir():
        filepath.mkdir(parents=True)
    for table in network.tables:
        getattr(network, table).to_csv(filepath.joinpath(table + ".csv"))
    if archive:
        shutil.make_archive(str(filepath), 'zip', str(filepath))
        shutil.rmtree(filepath, ignore_errors=True)
